"""Prediction orchestrator: quotes -> series -> features -> forecast -> signal.

Each reload runs the pipeline:
  1. FETCHING_QUOTES: ask the quote source for the selected range
  2. NORMALIZING_OR_MOCKING: normalize the payload, or fall back to a
     synthetic series when the fetch or the payload is unusable
  3. COMPUTING_FEATURES: wait for the feature manifest, build the vector
  4. REQUESTING_PREDICTION: submit the vector to the prediction service
  5. SETTLED_SUCCESS / SETTLED_SOFT_FAILURE

Every failure is soft: the session always ends with a series (live or
synthetic) and either a forecast or "unavailable". Nothing is raised to the
caller.

Ordering: every reload increments the session generation. A newer reload
cancels the in-flight one, and every write to the session checks that its
generation is still current, so a late result for a superseded range is
discarded instead of overwriting a fresher one.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import structlog

from niftyniti.config import AppSettings
from niftyniti.exceptions import (
    MalformedSeries,
    StaleResponse,
    TransportFailure,
    UpstreamError,
)
from niftyniti.features.engine import FeatureEngine, FeatureVector
from niftyniti.logging import get_logger
from niftyniti.market_data.client import QuoteSource
from niftyniti.market_data.mock import generate_mock_series
from niftyniti.market_data.normalizer import normalize_quotes, parse_chart_payload
from niftyniti.models import (
    DataSource,
    LiveSeries,
    OHLCVRecord,
    PredictionResult,
    SyntheticSeries,
    TaggedSeries,
    TimeRange,
    get_time_range,
)
from niftyniti.prediction.client import PredictionClient
from niftyniti.prediction.signal import derive_signal

if TYPE_CHECKING:
    from niftyniti.data.store import PredictionStore

logger = get_logger(__name__)


class PipelineState(str, Enum):
    """Where the session's current reload is."""

    IDLE = "idle"
    FETCHING_QUOTES = "fetching_quotes"
    NORMALIZING_OR_MOCKING = "normalizing_or_mocking"
    COMPUTING_FEATURES = "computing_features"
    REQUESTING_PREDICTION = "requesting_prediction"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_SOFT_FAILURE = "settled_soft_failure"


async def resolve_feature_manifest(
    client: PredictionClient,
    default_names: Sequence[str],
) -> list[str]:
    """Fetch the feature manifest, falling back to ``default_names`` on any failure."""
    try:
        names = await client.fetch_feature_names()
        logger.info("feature_manifest_loaded", features=names)
    except (TransportFailure, UpstreamError) as e:
        names = list(default_names)
        logger.warning("feature_manifest_fallback", error=str(e), features=names)
    except Exception as e:
        names = list(default_names)
        logger.error("feature_manifest_failed", error=str(e), exc_info=True)
    return names


@dataclass
class DashboardSession:
    """State owned by one dashboard instance.

    The prediction result is not stored: it is derived from ``forecast`` and
    the current last close on every access.
    """

    time_range: TimeRange
    series: TaggedSeries | None = None
    feature_names: list[str] | None = None
    features: FeatureVector = field(default_factory=dict)
    forecast: float | None = None
    state: PipelineState = PipelineState.IDLE
    generation: int = 0
    failure_reason: str | None = None

    @property
    def records(self) -> tuple[OHLCVRecord, ...]:
        return self.series.records if self.series is not None else ()

    @property
    def data_source(self) -> DataSource | None:
        return self.series.source if self.series is not None else None

    @property
    def last_close(self) -> int | None:
        records = self.records
        return records[-1].close if records else None

    @property
    def prediction(self) -> PredictionResult | None:
        if self.forecast is None or self.last_close is None:
            return None
        return derive_signal(self.forecast, self.last_close)


class PredictionOrchestrator:
    """Runs the prediction pipeline for a single dashboard session.

    Args:
        settings: Application-wide settings.
        quote_source: Upstream market-data client.
        prediction_client: Prediction service client (manifest + forecast).
        feature_engine: Feature computation; a default engine when None.
        prediction_store: Optional persistence for successful live forecasts.
        feature_names: Pre-resolved manifest; skips the manifest fetch.
        rng: Random source for the synthetic fallback series.
        clock: Returns the current aware datetime (tests pin it).
    """

    def __init__(
        self,
        settings: AppSettings,
        quote_source: QuoteSource,
        prediction_client: PredictionClient,
        feature_engine: FeatureEngine | None = None,
        prediction_store: PredictionStore | None = None,
        feature_names: Sequence[str] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._quote_source = quote_source
        self._prediction_client = prediction_client
        self._engine = feature_engine or FeatureEngine()
        self._prediction_store = prediction_store
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._tz = ZoneInfo(settings.quotes.exchange_timezone)

        self._session = DashboardSession(
            time_range=get_time_range(settings.api.default_range),
            feature_names=list(feature_names) if feature_names else None,
        )
        self._manifest_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._reload_task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def session(self) -> DashboardSession:
        return self._session

    # ──────────────────────────────────────────────
    # Public methods
    # ──────────────────────────────────────────────

    async def load_manifest(self) -> list[str]:
        """Resolve the feature manifest once; concurrent callers share the fetch.

        Falls back to the configured default names on any failure.
        """
        if self._session.feature_names is not None:
            return self._session.feature_names

        if self._manifest_task is None:
            self._manifest_task = asyncio.create_task(self._fetch_manifest())

        # Shielded: a superseded reload must not cancel the shared fetch
        return await asyncio.shield(self._manifest_task)

    async def reload(self, range_label: str | None = None) -> DashboardSession:
        """Run the pipeline for ``range_label`` (or the current range).

        Supersedes any reload still in flight. Returns the session once this
        reload has settled or been superseded; in the latter case the session
        reflects the newer reload.

        Raises:
            KeyError: If ``range_label`` is not a known range.
        """
        time_range = get_time_range(range_label) if range_label else self._session.time_range

        self._session.generation += 1
        generation = self._session.generation
        self._session.time_range = time_range

        previous = self._reload_task
        if previous is not None and not previous.done():
            previous.cancel()
            logger.info("reload_superseded", generation=generation - 1)

        task = asyncio.create_task(self._run_pipeline(generation, time_range))
        self._reload_task = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not task.cancelled():
            task.result()
        return self._session

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready view of the session, as shown in the dashboard header."""
        session = self._session
        records = session.records
        current = records[-1].close if records else 0
        previous = records[-2].close if len(records) >= 2 else 0
        change = current - previous if previous else 0
        change_percent = round(change / previous * 100, 2) if previous else 0.0

        prediction = session.prediction
        return {
            "range": session.time_range.label,
            "state": session.state.value,
            "generation": session.generation,
            "data_source": session.data_source.value if session.data_source else None,
            "points": len(records),
            "current_price": current,
            "change": change,
            "change_percent": change_percent,
            "features": dict(session.features),
            "prediction": (
                {
                    "forecast": prediction.forecast_value,
                    "as_of_price": prediction.as_of_price,
                    "delta": round(prediction.delta, 2),
                    "delta_percent": round(prediction.delta_percent * 100, 2),
                    "signal": prediction.signal.value,
                }
                if prediction is not None
                else None
            ),
            "failure_reason": session.failure_reason,
            "series": [
                {
                    "date": r.date.isoformat(),
                    "open": r.open,
                    "high": r.high,
                    "low": r.low,
                    "close": r.close,
                    "volume": r.volume,
                }
                for r in records
            ],
        }

    # ──────────────────────────────────────────────
    # Pipeline
    # ──────────────────────────────────────────────

    async def _run_pipeline(self, generation: int, time_range: TimeRange) -> None:
        with structlog.contextvars.bound_contextvars(
            generation=generation, range=time_range.label
        ):
            try:
                await self._pipeline(generation, time_range)
            except StaleResponse as e:
                logger.debug("stale_result_discarded", detail=str(e))
            except Exception as e:
                logger.error("pipeline_failed", error=str(e), exc_info=True)
                if self._is_current(generation):
                    self._settle_failure(generation, f"unexpected error: {e}")

    async def _pipeline(self, generation: int, time_range: TimeRange) -> None:
        self._apply(generation, state=PipelineState.FETCHING_QUOTES)

        series = await self._load_series(generation, time_range)
        self._apply(
            generation,
            series=series,
            features={},
            forecast=None,
            failure_reason=None,
        )

        names = await self.load_manifest()
        self._apply(generation, state=PipelineState.COMPUTING_FEATURES)

        records = series.records
        vector = self._engine.compute(records, names)
        self._apply(generation, features=vector)

        if not vector or not self._engine.can_compute(records):
            logger.info(
                "prediction_skipped",
                records=len(records),
                features=len(vector),
            )
            reason = "not enough history to compute features" if vector else "no features requested"
            self._settle_failure(generation, reason)
            return

        self._apply(generation, state=PipelineState.REQUESTING_PREDICTION)
        try:
            forecast = await self._prediction_client.predict(vector)
        except (TransportFailure, UpstreamError) as e:
            logger.warning("prediction_unavailable", error=str(e))
            self._settle_failure(generation, str(e))
            return

        self._apply(generation, forecast=forecast, state=PipelineState.SETTLED_SUCCESS)

        result = self._session.prediction
        assert result is not None
        logger.info(
            "prediction_settled",
            forecast=forecast,
            last_close=result.as_of_price,
            delta=round(result.delta, 2),
            signal=result.signal.value,
            data_source=series.source.value,
        )
        await self._persist(series, vector, result)

    async def _load_series(self, generation: int, time_range: TimeRange) -> TaggedSeries:
        """Fetch and normalize live quotes, falling back to a synthetic series."""
        end = self._clock()
        start = end - timedelta(days=time_range.days)

        try:
            payload = await self._quote_source.fetch_chart(
                self._settings.quotes.symbol, start, end, time_range.interval
            )
        except (TransportFailure, UpstreamError) as e:
            return self._synthetic(generation, time_range, str(e))
        except Exception as e:
            logger.error("quote_fetch_failed", error=str(e), exc_info=True)
            return self._synthetic(generation, time_range, f"quote fetch failed: {e}")

        self._apply(generation, state=PipelineState.NORMALIZING_OR_MOCKING)
        try:
            records = normalize_quotes(
                parse_chart_payload(payload),
                timezone=self._settings.quotes.exchange_timezone,
                intraday=time_range.interval != "1d",
            )
        except MalformedSeries as e:
            return self._synthetic(generation, time_range, str(e))
        except Exception as e:
            logger.error("quote_normalize_failed", error=str(e), exc_info=True)
            return self._synthetic(generation, time_range, f"unusable quote payload: {e}")

        logger.info("quotes_loaded", records=len(records), data_source=DataSource.LIVE.value)
        return LiveSeries(records)

    def _synthetic(self, generation: int, time_range: TimeRange, reason: str) -> SyntheticSeries:
        self._apply(generation, state=PipelineState.NORMALIZING_OR_MOCKING)
        records = generate_mock_series(
            time_range.days,
            self._settings.mock.base_price,
            today=self._today(),
            rng=self._rng,
            max_step=self._settings.mock.max_step,
        )
        logger.warning(
            "quote_fallback_to_synthetic",
            reason=reason,
            records=len(records),
        )
        return SyntheticSeries(records, reason=reason)

    async def _fetch_manifest(self) -> list[str]:
        names = await resolve_feature_manifest(
            self._prediction_client,
            self._settings.prediction.default_feature_names,
        )
        self._session.feature_names = names
        return names

    async def _persist(
        self,
        series: TaggedSeries,
        vector: FeatureVector,
        result: PredictionResult,
    ) -> None:
        """Record a live forecast for today; synthetic forecasts are not kept."""
        if self._prediction_store is None or not self._settings.prediction.persist_results:
            return
        if not isinstance(series, LiveSeries):
            return

        try:
            await self._prediction_store.upsert(
                self._today(),
                start=Decimal(str(result.as_of_price)),
                close=Decimal(str(result.forecast_value)),
                weights=vector,
            )
        except Exception as e:
            logger.error("prediction_persist_failed", error=str(e), exc_info=True)

    # ──────────────────────────────────────────────
    # Session writes
    # ──────────────────────────────────────────────

    def _is_current(self, generation: int) -> bool:
        return generation == self._session.generation

    def _apply(self, generation: int, **changes: Any) -> None:
        """Write ``changes`` to the session if ``generation`` is still current.

        Raises:
            StaleResponse: If a newer reload has started; nothing is written.
        """
        if not self._is_current(generation):
            raise StaleResponse(
                f"generation {generation} superseded by {self._session.generation} "
                f"(fields: {', '.join(sorted(changes))})"
            )
        for name, value in changes.items():
            setattr(self._session, name, value)

    def _settle_failure(self, generation: int, reason: str) -> None:
        self._apply(
            generation,
            state=PipelineState.SETTLED_SOFT_FAILURE,
            forecast=None,
            failure_reason=reason,
        )

    def _today(self) -> date:
        return self._clock().astimezone(self._tz).date()
