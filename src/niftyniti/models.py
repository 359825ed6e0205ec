"""Shared data models for the NiftyNiti prediction pipeline.

Prices inside a series are whole index points (ints). Derived indicator values
are floats rounded to a fixed precision at the feature boundary.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class DataSource(str, Enum):
    """Where the series on the dashboard came from."""

    LIVE = "live"
    SYNTHETIC = "synthetic"


class Signal(str, Enum):
    """Direction of the forecast relative to the last close."""

    BULLISH = "bullish"
    BEARISH = "bearish"


@dataclass(frozen=True)
class OHLCVRecord:
    """One trading bar. Invariant: low <= open, close <= high."""

    date: date
    open: int
    high: int
    low: int
    close: int
    volume: int = 0


@dataclass
class RawQuotes:
    """Parallel quote arrays as returned by the upstream chart API.

    Entries may be None and the arrays may differ in length.
    """

    timestamps: list[int | None]
    opens: list[float | None] = field(default_factory=list)
    highs: list[float | None] = field(default_factory=list)
    lows: list[float | None] = field(default_factory=list)
    closes: list[float | None] = field(default_factory=list)
    volumes: list[float | None] = field(default_factory=list)


@dataclass(frozen=True)
class LiveSeries:
    """Series normalized from the live quote source."""

    records: tuple[OHLCVRecord, ...]

    @property
    def source(self) -> DataSource:
        return DataSource.LIVE


@dataclass(frozen=True)
class SyntheticSeries:
    """Series produced by the mock generator after a quote failure."""

    records: tuple[OHLCVRecord, ...]
    reason: str = ""

    @property
    def source(self) -> DataSource:
        return DataSource.SYNTHETIC


TaggedSeries = LiveSeries | SyntheticSeries


@dataclass(frozen=True)
class PredictionResult:
    """Forecast paired with the close it was made against.

    delta, delta_percent and signal are derived on access, so they always
    agree with forecast_value and as_of_price.
    """

    forecast_value: float
    as_of_price: float

    @property
    def delta(self) -> float:
        return self.forecast_value - self.as_of_price

    @property
    def delta_percent(self) -> float:
        """Delta as a fraction of the as-of price (0 when the price is 0)."""
        if not self.as_of_price:
            return 0.0
        return self.delta / self.as_of_price

    @property
    def signal(self) -> Signal:
        return Signal.BULLISH if self.delta >= 0 else Signal.BEARISH


@dataclass(frozen=True)
class TimeRange:
    """A dashboard range button."""

    label: str
    days: int

    @property
    def interval(self) -> str:
        """Bar interval requested upstream: hourly bars for the 1-day view."""
        return "1h" if self.days == 1 else "1d"


TIME_RANGES: dict[str, TimeRange] = {
    r.label: r
    for r in (
        TimeRange("1D", 1),
        TimeRange("1M", 30),
        TimeRange("3M", 90),
        TimeRange("6M", 180),
        TimeRange("1Y", 365),
    )
}


def get_time_range(label: str) -> TimeRange:
    """Look up a range by its label (case-insensitive).

    Raises:
        KeyError: If the label is not one of the dashboard ranges.
    """
    return TIME_RANGES[label.upper()]
