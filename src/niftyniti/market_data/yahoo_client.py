"""Yahoo Finance chart API client via httpx async."""

from datetime import datetime
from typing import Self
from urllib.parse import quote

import httpx

from niftyniti.config import QuoteSourceSettings
from niftyniti.exceptions import TransportFailure, UpstreamError
from niftyniti.logging import get_logger
from niftyniti.market_data.client import QuoteSource

logger = get_logger(__name__)


class YahooQuoteClient(QuoteSource):
    """Concrete quote source backed by ``/v8/finance/chart/{symbol}``.

    Args:
        settings: Base URL, timeout and user agent.
        client: Optional pre-built httpx client (tests inject one with a
            MockTransport). When omitted the client is created and owned here.
    """

    def __init__(
        self,
        settings: QuoteSourceSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            headers={"User-Agent": settings.user_agent},
        )

    async def fetch_chart(
        self,
        symbol: str,
        period_start: datetime,
        period_end: datetime,
        interval: str = "1d",
    ) -> dict:
        """Fetch chart data for ``symbol`` between two instants."""
        path = f"/v8/finance/chart/{quote(symbol, safe='')}"
        params = {
            "period1": int(period_start.timestamp()),
            "period2": int(period_end.timestamp()),
            "interval": interval,
        }

        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.warning("quote_transport_failed", symbol=symbol, error=str(e))
            raise TransportFailure(f"quote source unreachable: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "quote_upstream_error",
                symbol=symbol,
                status=response.status_code,
            )
            raise UpstreamError(f"quote source returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError("quote source returned a non-JSON body") from e

        logger.debug("quote_chart_fetched", symbol=symbol, interval=interval)
        return body

    async def close(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
