"""FastAPI application factory for the NiftyNiti JSON API."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from niftyniti.api.routes import blogs, market, predictions
from niftyniti.exceptions import DuplicateSlug, InvalidRecord, RecordNotFound

log = structlog.get_logger(__name__)


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    log.info("request_rejected", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"error": str(exc)})


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  main.py uses it to wire clients and stores onto app.state:
                  settings, quote_source, prediction_client, feature_names,
                  blog_store, prediction_store.

    Returns:
        Configured FastAPI application with all routers under /api.
    """
    app = FastAPI(
        title="NiftyNiti API",
        lifespan=lifespan,
    )

    app.add_exception_handler(RecordNotFound, _not_found)
    app.add_exception_handler(DuplicateSlug, _bad_request)
    app.add_exception_handler(InvalidRecord, _bad_request)

    app.include_router(market.router, prefix="/api")
    app.include_router(predictions.router, prefix="/api")
    app.include_router(blogs.router, prefix="/api")

    return app
