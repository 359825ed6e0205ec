"""Feature engine: OHLCV series -> named feature vector for the prediction service.

The set of feature names is decided by the prediction service's manifest at
runtime, so the engine knows a superset of indicators and returns exactly the
requested subset. Requested names that are unknown, or whose window is longer
than the available history, map to 0 instead of being omitted.

The engine never raises. A series shorter than MIN_HISTORY yields an all-zero
vector; whether to still call the prediction service is the orchestrator's
decision (see ``can_compute``).
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from niftyniti.exceptions import InsufficientHistory
from niftyniti.features import indicators
from niftyniti.logging import get_logger
from niftyniti.models import OHLCVRecord

logger = get_logger(__name__)

#: Records needed before any feature is computed (5/10-period windows).
MIN_HISTORY = 10
#: Records needed for RSI, volatility and the 20-period average.
LONG_HISTORY = 20

FeatureVector = dict[str, float]

_TWO_DP = Decimal("0.01")
_FOUR_DP = Decimal("0.0001")


@dataclass(frozen=True)
class _Feature:
    compute: Callable[[Sequence[OHLCVRecord], list[Decimal]], Decimal]
    min_records: int = MIN_HISTORY
    quantum: Decimal | None = None  # None = transmit as-is


def _prev_close(records: Sequence[OHLCVRecord], closes: list[Decimal]) -> Decimal:
    return closes[-2] if len(closes) >= 2 else closes[-1]


def _last_field(name: str) -> Callable[[Sequence[OHLCVRecord], list[Decimal]], Decimal]:
    def compute(records: Sequence[OHLCVRecord], closes: list[Decimal]) -> Decimal:
        return Decimal(getattr(records[-1], name))

    return compute


def _sma(window: int) -> Callable[[Sequence[OHLCVRecord], list[Decimal]], Decimal]:
    def compute(records: Sequence[OHLCVRecord], closes: list[Decimal]) -> Decimal:
        return indicators.sma(closes, window)

    return compute


_FEATURES: dict[str, _Feature] = {
    "Prev_Close": _Feature(_prev_close),
    "close": _Feature(_prev_close),
    "5MA": _Feature(_sma(5), quantum=_TWO_DP),
    "sma_5": _Feature(_sma(5), quantum=_TWO_DP),
    "10MA": _Feature(_sma(10), quantum=_TWO_DP),
    "sma_10": _Feature(_sma(10), quantum=_TWO_DP),
    "sma_20": _Feature(_sma(20), min_records=LONG_HISTORY, quantum=_TWO_DP),
    "Return": _Feature(lambda r, c: indicators.simple_return(c), quantum=_FOUR_DP),
    "rsi": _Feature(
        lambda r, c: indicators.rsi(c), min_records=LONG_HISTORY, quantum=_TWO_DP
    ),
    "volatility": _Feature(
        lambda r, c: indicators.realized_volatility(c),
        min_records=LONG_HISTORY,
        quantum=_FOUR_DP,
    ),
    "open": _Feature(_last_field("open")),
    "high": _Feature(_last_field("high")),
    "low": _Feature(_last_field("low")),
    "volume": _Feature(_last_field("volume")),
}


def supported_features() -> list[str]:
    """Names the engine can compute."""
    return list(_FEATURES)


class FeatureEngine:
    """Computes the requested feature vector from an OHLCV series."""

    def __init__(self, min_history: int = MIN_HISTORY) -> None:
        self._min_history = min_history

    def can_compute(self, records: Sequence[OHLCVRecord]) -> bool:
        """True when the series is long enough for the base features."""
        return len(records) >= self._min_history

    def compute(self, records: Sequence[OHLCVRecord], names: Iterable[str]) -> FeatureVector:
        """Return a vector whose keys are exactly ``names``, in request order.

        Args:
            records: Series ordered oldest-first.
            names: Feature names requested by the prediction service.
        """
        requested = list(dict.fromkeys(names))
        vector: FeatureVector = {name: 0.0 for name in requested}

        if not self.can_compute(records):
            logger.debug(
                "feature_history_insufficient",
                records=len(records),
                required=self._min_history,
            )
            return vector

        closes = [Decimal(r.close) for r in records]
        for name in requested:
            feature = _FEATURES.get(name)
            if feature is None:
                logger.debug("feature_unknown", feature=name)
                continue
            if len(records) < feature.min_records:
                continue
            try:
                value = feature.compute(records, closes)
            except InsufficientHistory:
                continue
            if feature.quantum is not None:
                value = value.quantize(feature.quantum, rounding=ROUND_HALF_UP)
            vector[name] = float(value)

        return vector
