"""Synthetic OHLCV series used when the live quote source is unavailable.

Shape is deterministic (one bar per business day in the requested window,
ordered, OHLC-consistent), values are not: each bar is a bounded random-walk
step from the previous close.
"""

import random
from datetime import date, timedelta

from niftyniti.models import OHLCVRecord

#: Max distance of the open from the walk price (points, each side).
_OPEN_JITTER = 50.0
#: Max extension of high above / low below the open-price body.
_WICK = 100.0
_VOLUME_MIN = 500_000
_VOLUME_SPAN = 1_000_000


def _is_business_day(day: date) -> bool:
    return day.weekday() < 5


def business_days(days: int, today: date) -> list[date]:
    """Business days in the ``days``-long calendar window ending at ``today``.

    Falls back to the most recent business day when the window contains
    none (e.g. a one-day window on a Sunday).
    """
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    result = [d for d in window if _is_business_day(d)]
    if not result:
        last = today
        while not _is_business_day(last):
            last -= timedelta(days=1)
        result = [last]
    return result


def generate_mock_series(
    days: int,
    base_price: float = 24400.0,
    *,
    today: date | None = None,
    rng: random.Random | None = None,
    max_step: float = 200.0,
) -> tuple[OHLCVRecord, ...]:
    """Generate a random-walk OHLCV series over the last ``days`` calendar days.

    Args:
        days: Calendar-day window; weekends inside it are skipped.
        base_price: Starting level of the walk.
        today: Last day of the window (defaults to date.today()).
        rng: Random source; pass a seeded Random for reproducible output.
        max_step: Width of the uniform daily drift (drift in +/- max_step / 2).

    Returns:
        At least one record, dates strictly increasing.
    """
    rng = rng or random.Random()
    today = today or date.today()
    price = base_price
    records: list[OHLCVRecord] = []

    for day in business_days(max(days, 1), today):
        price = max(price + (rng.random() - 0.5) * max_step, 1.0)
        open_ = max(price + (rng.random() - 0.5) * _OPEN_JITTER, 1.0)
        high = max(open_, price) + rng.random() * _WICK
        low = max(min(open_, price) - rng.random() * _WICK, 1.0)
        close = low + rng.random() * (high - low)

        # Rounding can reorder values that sit within half a point; clamp after.
        o, c = round(open_), round(close)
        h = max(round(high), o, c)
        lo = min(round(low), o, c)

        records.append(
            OHLCVRecord(
                date=day,
                open=o,
                high=h,
                low=lo,
                close=c,
                volume=round(rng.random() * _VOLUME_SPAN + _VOLUME_MIN),
            )
        )
        price = close

    return tuple(records)
