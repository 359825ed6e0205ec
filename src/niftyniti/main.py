"""Entry point for the NiftyNiti API server.

Wires all components together inside the FastAPI lifespan and serves the app
with uvicorn's programmatic API.

Component wiring order (in lifespan):
1. NiftyNitiDatabase (SQLite connection, schema)
2. BlogStore / PredictionStore
3. YahooQuoteClient (quote source)
4. HttpPredictionClient (feature manifest + forecasts)
5. Feature manifest, resolved once with fallback to the default names
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from niftyniti.api.app import create_app
from niftyniti.config import AppSettings
from niftyniti.data.database import NiftyNitiDatabase
from niftyniti.data.store import BlogStore, PredictionStore
from niftyniti.logging import get_logger, setup_logging
from niftyniti.market_data.yahoo_client import YahooQuoteClient
from niftyniti.orchestrator import resolve_feature_manifest
from niftyniti.prediction.client import HttpPredictionClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and HTTP clients for the lifetime of the app.

    On startup: connects the database, builds the stores and clients, stores
    them on app.state, and resolves the feature manifest.

    On shutdown: closes the clients and the database.
    """
    logger = get_logger("niftyniti.main")
    settings: AppSettings = app.state.settings

    database = NiftyNitiDatabase(settings.database.db_path)
    await database.connect()

    quote_source = YahooQuoteClient(settings.quotes)
    prediction_client = HttpPredictionClient(settings.prediction)

    app.state.blog_store = BlogStore(database)
    app.state.prediction_store = PredictionStore(database)
    app.state.quote_source = quote_source
    app.state.prediction_client = prediction_client
    app.state.feature_names = await resolve_feature_manifest(
        prediction_client, settings.prediction.default_feature_names
    )

    logger.info(
        "lifespan_started",
        symbol=settings.quotes.symbol,
        features=app.state.feature_names,
    )

    try:
        yield
    finally:
        await prediction_client.close()
        await quote_source.close()
        await database.close()
        logger.info("niftyniti_stopped")


async def run() -> None:
    """Load settings, configure logging, and serve the API."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("niftyniti.main")

    app = create_app(lifespan=lifespan)
    app.state.settings = settings

    logger.info("starting_api", host=settings.api.host, port=settings.api.port)

    config = uvicorn.Config(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
