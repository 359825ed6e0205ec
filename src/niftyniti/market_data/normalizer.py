"""Quote normalization: raw chart arrays -> ordered OHLCV series.

The upstream chart API returns parallel arrays (timestamp, open, high, low,
close, volume) with gaps: a bar may carry ``None`` for any field, holidays can
produce zero closes, and the arrays are not guaranteed to be the same length.

Normalization rules:
- Only indices with a present, strictly positive close are kept.
- Missing or non-positive open/high/low fall back to that index's close,
  never to a neighbouring bar. Missing volume becomes 0.
- Values are rounded to whole index points (ROUND_HALF_UP).
- Dates are the timestamp truncated to the calendar day in the exchange
  timezone. Output is sorted ascending and deduplicated (last bar wins).
- high/low are widened to cover open and close so low <= open, close <= high.
"""

import math
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from zoneinfo import ZoneInfo

from niftyniti.exceptions import MalformedSeries
from niftyniti.logging import get_logger
from niftyniti.models import OHLCVRecord, RawQuotes

logger = get_logger(__name__)

_WHOLE_POINT = Decimal("1")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _to_points(value: float) -> int:
    """Round a quote to the nearest whole point, halves rounding up."""
    return int(Decimal(str(value)).quantize(_WHOLE_POINT, rounding=ROUND_HALF_UP))


def _at(values: list, index: int) -> Any:
    """Return values[index], or None when the array is too short."""
    return values[index] if index < len(values) else None


def _positive_or(value: Any, fallback: float) -> float:
    if _is_number(value) and value > 0:
        return value
    return fallback


def _array(quotes: dict, key: str) -> list:
    values = quotes.get(key) or []
    if not isinstance(values, list):
        raise MalformedSeries(f"quote field {key!r} is not an array")
    return list(values)


def parse_chart_payload(payload: Any) -> RawQuotes:
    """Extract the quote arrays from a chart API response body.

    Expected shape::

        {"chart": {"result": [{"timestamp": [...],
                               "indicators": {"quote": [{"open": [...], ...}]}}],
                   "error": null}}

    Raises:
        MalformedSeries: If the body carries an error field or the
            timestamp/quote arrays are missing.
    """
    if not isinstance(payload, dict):
        raise MalformedSeries("chart payload is not an object")
    if payload.get("error"):
        raise MalformedSeries(f"upstream error: {payload['error']}")

    chart = payload.get("chart") or {}
    if not isinstance(chart, dict):
        raise MalformedSeries("chart payload has no chart object")
    if chart.get("error"):
        raise MalformedSeries(f"upstream chart error: {chart['error']}")

    results = chart.get("result") or []
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        raise MalformedSeries("chart payload has no result")
    result = results[0]

    timestamps = result.get("timestamp")
    indicators = result.get("indicators")
    quote_list = indicators.get("quote") if isinstance(indicators, dict) else None
    quotes = quote_list[0] if isinstance(quote_list, list) and quote_list else None
    if not isinstance(timestamps, list) or not timestamps:
        raise MalformedSeries("missing timestamps or quotes data")
    if not isinstance(quotes, dict) or not quotes:
        raise MalformedSeries("missing timestamps or quotes data")

    return RawQuotes(
        timestamps=list(timestamps),
        opens=_array(quotes, "open"),
        highs=_array(quotes, "high"),
        lows=_array(quotes, "low"),
        closes=_array(quotes, "close"),
        volumes=_array(quotes, "volume"),
    )


def normalize_quotes(
    raw: RawQuotes,
    timezone: str = "Asia/Kolkata",
    intraday: bool = False,
) -> tuple[OHLCVRecord, ...]:
    """Convert raw parallel quote arrays into a clean, ordered series.

    Args:
        raw: Parallel arrays from the quote source.
        timezone: Exchange timezone used to truncate timestamps to a day.
        intraday: Keep the full local bar time instead of truncating to the
            calendar day (used for hourly bars of the 1D range).

    Returns:
        Records sorted by strictly increasing date.

    Raises:
        MalformedSeries: If the timestamp and close arrays differ in length,
            or no valid record remains.
    """
    if len(raw.timestamps) != len(raw.closes):
        raise MalformedSeries(
            f"timestamps ({len(raw.timestamps)}) and closes "
            f"({len(raw.closes)}) differ in length"
        )

    tz = ZoneInfo(timezone)
    by_date: dict[date, OHLCVRecord] = {}
    dropped = 0

    # Sort by timestamp first so "last bar of the day wins" is well defined
    indices = sorted(
        (i for i, ts in enumerate(raw.timestamps) if _is_number(ts)),
        key=lambda i: raw.timestamps[i],
    )
    dropped += len(raw.timestamps) - len(indices)

    for i in indices:
        close = raw.closes[i]
        if not _is_number(close) or close <= 0:
            dropped += 1
            continue

        open_ = _positive_or(_at(raw.opens, i), close)
        high = _positive_or(_at(raw.highs, i), close)
        low = _positive_or(_at(raw.lows, i), close)
        volume = _at(raw.volumes, i)
        if not _is_number(volume) or volume < 0:
            volume = 0

        points = [_to_points(v) for v in (open_, high, low, close)]
        try:
            local = datetime.fromtimestamp(raw.timestamps[i], tz=tz)
        except (OverflowError, OSError, ValueError):
            # e.g. millisecond epochs land past year 9999
            dropped += 1
            continue
        key: date = local.replace(second=0, microsecond=0) if intraday else local.date()

        by_date[key] = OHLCVRecord(
            date=key,
            open=points[0],
            high=max(points),
            low=min(points),
            close=points[3],
            volume=_to_points(volume),
        )

    if not by_date:
        raise MalformedSeries("no valid records in quote payload")

    records = tuple(by_date[k] for k in sorted(by_date))
    logger.debug(
        "quotes_normalized",
        raw_count=len(raw.timestamps),
        records=len(records),
        dropped=dropped,
    )
    return records
