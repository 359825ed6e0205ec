"""Prediction service clients.

The service exposes two endpoints:
- ``GET /features`` -> ``{"features": [[name, description], ...]}``, the
  ordered feature manifest the model was trained on.
- ``POST /predict`` with a flat ``{name: number}`` body ->
  ``{"prediction": number}`` or ``{"error": "..."}``.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Self

import httpx

from niftyniti.config import PredictionSettings
from niftyniti.exceptions import TransportFailure, UpstreamError
from niftyniti.logging import get_logger

logger = get_logger(__name__)


class PredictionClient(ABC):
    """Abstract base class for prediction service clients."""

    @abstractmethod
    async def fetch_feature_names(self) -> list[str]:
        """Return the feature names the model expects, in manifest order."""
        ...

    @abstractmethod
    async def predict(self, features: dict[str, float]) -> float:
        """Submit a feature vector and return the numeric forecast."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...


class HttpPredictionClient(PredictionClient):
    """Prediction client over httpx async.

    Args:
        settings: Base URL and timeout of the prediction service.
        client: Optional pre-built httpx client (tests inject one with a
            MockTransport). When omitted the client is created and owned here.
    """

    def __init__(
        self,
        settings: PredictionSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )

    async def fetch_feature_names(self) -> list[str]:
        """Fetch the feature manifest and keep only the names.

        Raises:
            TransportFailure: If the service could not be reached.
            UpstreamError: On non-2xx or a manifest without usable names.
        """
        body = await self._request("GET", "/features")

        entries = body.get("features")
        if not isinstance(entries, list):
            raise UpstreamError("feature manifest has no features list")

        names: list[str] = []
        for entry in entries:
            # Entries are [name, description]; accept bare names as well
            name = entry[0] if isinstance(entry, (list, tuple)) and entry else entry
            if not isinstance(name, str) or not name:
                raise UpstreamError(f"invalid feature manifest entry: {entry!r}")
            names.append(name)

        if not names:
            raise UpstreamError("feature manifest is empty")

        logger.debug("feature_manifest_fetched", count=len(names))
        return names

    async def predict(self, features: dict[str, float]) -> float:
        """POST the feature vector and return the forecast.

        Raises:
            TransportFailure: If the service could not be reached.
            UpstreamError: On non-2xx, an ``error`` field in the body, or a
                missing/non-numeric ``prediction``.
        """
        body = await self._request("POST", "/predict", json=features)

        if body.get("error"):
            raise UpstreamError(f"prediction service error: {body['error']}")

        value = body.get("prediction")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise UpstreamError(f"prediction is not numeric: {value!r}")
        if not math.isfinite(value):
            raise UpstreamError(f"prediction is not finite: {value!r}")

        return float(value)

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("prediction_transport_failed", path=path, error=str(e))
            raise TransportFailure(f"prediction service unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            detail = body.get("error") if isinstance(body, dict) else None
            logger.warning(
                "prediction_upstream_error",
                path=path,
                status=response.status_code,
                detail=detail,
            )
            raise UpstreamError(
                f"prediction service returned HTTP {response.status_code}"
            )

        if not isinstance(body, dict):
            raise UpstreamError(f"prediction service returned a non-object body for {path}")
        return body

    async def close(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
