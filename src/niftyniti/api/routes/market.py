"""Market endpoints: quote proxy, dashboard pipeline run, health."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from niftyniti.exceptions import TransportFailure, UpstreamError
from niftyniti.models import TIME_RANGES
from niftyniti.orchestrator import PredictionOrchestrator

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/quotes")
async def get_quotes(
    request: Request,
    symbol: str | None = None,
    period1: int | None = None,
    period2: int | None = None,
    interval: str = "1d",
) -> JSONResponse:
    """Proxy the upstream chart API. period1/period2 are Unix seconds.

    Defaults to the configured symbol over the last 90 days.
    """
    settings = request.app.state.settings
    quote_source = request.app.state.quote_source

    try:
        end = (
            datetime.fromtimestamp(period2, tz=timezone.utc)
            if period2 is not None
            else datetime.now(timezone.utc)
        )
        start = (
            datetime.fromtimestamp(period1, tz=timezone.utc)
            if period1 is not None
            else end - timedelta(days=90)
        )
    except (OverflowError, OSError, ValueError):
        return JSONResponse(
            status_code=400,
            content={"error": "period1 and period2 must be Unix timestamps in seconds"},
        )

    try:
        payload = await quote_source.fetch_chart(
            symbol or settings.quotes.symbol, start, end, interval
        )
    except (TransportFailure, UpstreamError) as e:
        log.warning("quote_proxy_failed", error=str(e))
        return JSONResponse(status_code=502, content={"error": "Quote source fetch failed"})

    return JSONResponse(content=payload)


@router.get("/dashboard")
async def get_dashboard(request: Request, range: str | None = None) -> JSONResponse:
    """Run the prediction pipeline for a range and return the session snapshot.

    Each request gets its own session; the feature manifest resolved at
    startup is shared.
    """
    state = request.app.state
    label = (range or state.settings.api.default_range).upper()
    if label not in TIME_RANGES:
        return JSONResponse(
            status_code=400,
            content={"error": f"unknown range {label!r}", "ranges": list(TIME_RANGES)},
        )

    orchestrator = PredictionOrchestrator(
        settings=state.settings,
        quote_source=state.quote_source,
        prediction_client=state.prediction_client,
        prediction_store=getattr(state, "prediction_store", None),
        feature_names=getattr(state, "feature_names", None),
    )
    await orchestrator.reload(label)
    return JSONResponse(content=orchestrator.snapshot())
