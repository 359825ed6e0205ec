"""Daily prediction record endpoints."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError, field_validator

from niftyniti.data.models import PredictionRecord

log = structlog.get_logger(__name__)

router = APIRouter()


class PredictionIn(BaseModel):
    """Body of POST /predictions. ``date`` may be a date or an ISO timestamp."""

    date: dt.date
    start: Decimal
    close: Decimal
    weights: dict[str, float]

    @field_validator("date", mode="before")
    @classmethod
    def truncate_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            return dt.datetime.fromisoformat(value).date()
        if isinstance(value, dt.datetime):
            return value.date()
        return value


def _record_to_dict(record: PredictionRecord) -> dict:
    return {
        "date": record.date.isoformat(),
        "start": str(record.start),
        "close": str(record.close),
        "high": str(record.high),
        "low": str(record.low),
        "weights": record.weights,
        "created_at": record.created_at,
    }


@router.get("/predictions")
async def list_predictions(request: Request, limit: int | None = None) -> JSONResponse:
    """Most recent prediction records, newest first."""
    if limit is None:
        limit = request.app.state.settings.api.prediction_history_limit
    if limit < 1:
        return JSONResponse(status_code=400, content={"error": "limit must be at least 1"})
    store = request.app.state.prediction_store
    records = await store.recent(limit)
    return JSONResponse(content=[_record_to_dict(r) for r in records])


@router.post("/predictions")
async def save_prediction(request: Request) -> JSONResponse:
    """Create or update the record for a day; 400 when fields are missing."""
    try:
        body = PredictionIn.model_validate(await request.json())
    except (ValidationError, ValueError) as e:
        log.info("prediction_rejected", error=str(e))
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields (date, start, close, and weights are required)"},
        )

    store = request.app.state.prediction_store
    record = await store.upsert(body.date, body.start, body.close, body.weights)
    return JSONResponse(content=_record_to_dict(record))
