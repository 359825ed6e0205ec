"""Abstract quote source interface.

The orchestrator and the quote proxy route depend only on this interface,
keeping Yahoo-specific details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class QuoteSource(ABC):
    """Abstract base class for market-data quote sources."""

    @abstractmethod
    async def fetch_chart(
        self,
        symbol: str,
        period_start: datetime,
        period_end: datetime,
        interval: str = "1d",
    ) -> dict:
        """Fetch the raw chart body for a symbol over a period.

        Returns the decoded JSON body unchanged; parsing it is the
        normalizer's job.

        Raises:
            TransportFailure: If the source could not be reached.
            UpstreamError: On a non-2xx response or an undecodable body.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...
