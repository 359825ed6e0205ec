"""Shared test fixtures for NiftyNiti."""

from collections.abc import Callable, Sequence
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from niftyniti.config import ApiSettings, AppSettings, PredictionSettings
from niftyniti.models import OHLCVRecord

IST = ZoneInfo("Asia/Kolkata")


def business_days_ending(end: date, count: int) -> list[date]:
    """The ``count`` business days up to and including ``end`` (oldest first)."""
    days: list[date] = []
    day = end
    while len(days) < count:
        if day.weekday() < 5:
            days.append(day)
        day -= timedelta(days=1)
    return list(reversed(days))


@pytest.fixture
def settings() -> AppSettings:
    """Return AppSettings with test defaults."""
    return AppSettings(
        log_level="DEBUG",
        prediction=PredictionSettings(persist_results=True),
        api=ApiSettings(default_range="3M"),
    )


@pytest.fixture
def make_records() -> Callable[..., tuple[OHLCVRecord, ...]]:
    """Factory: closes -> business-day records ending 2025-03-14 (a Friday)."""

    def _make(closes: Sequence[int], end: date = date(2025, 3, 14)) -> tuple[OHLCVRecord, ...]:
        days = business_days_ending(end, len(closes))
        return tuple(
            OHLCVRecord(
                date=d,
                open=c,
                high=c + 5,
                low=c - 5,
                close=c,
                volume=1000,
            )
            for d, c in zip(days, closes)
        )

    return _make


@pytest.fixture
def make_chart_payload() -> Callable[..., dict]:
    """Factory: closes -> Yahoo chart JSON body with 09:15 IST daily bars."""

    def _make(closes: Sequence[float | None], end: date = date(2025, 3, 14)) -> dict:
        days = business_days_ending(end, len(closes))
        timestamps = [
            int(datetime.combine(d, time(9, 15), tzinfo=IST).timestamp()) for d in days
        ]
        return {
            "chart": {
                "result": [
                    {
                        "meta": {"symbol": "^NSEI"},
                        "timestamp": timestamps,
                        "indicators": {
                            "quote": [
                                {
                                    "open": list(closes),
                                    "high": [c + 10 if c else None for c in closes],
                                    "low": [c - 10 if c else None for c in closes],
                                    "close": list(closes),
                                    "volume": [250000] * len(closes),
                                }
                            ]
                        },
                    }
                ],
                "error": None,
            }
        }

    return _make
