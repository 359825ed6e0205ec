"""Tests for quote normalization and chart payload parsing.

Covers gap handling (None/zero/negative entries), per-index fallbacks,
whole-point rounding, exchange-timezone dates, ordering and deduplication.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from niftyniti.exceptions import MalformedSeries
from niftyniti.market_data.normalizer import normalize_quotes, parse_chart_payload
from niftyniti.models import RawQuotes

IST = ZoneInfo("Asia/Kolkata")


def _ts(year: int, month: int, day: int, hour: int = 9, minute: int = 15) -> int:
    """Unix seconds for a local IST time."""
    return int(datetime(year, month, day, hour, minute, tzinfo=IST).timestamp())


def _assert_ordered(records) -> None:
    for prev, cur in zip(records, records[1:]):
        assert prev.date < cur.date
    for r in records:
        assert r.low <= r.open <= r.high
        assert r.low <= r.close <= r.high


class TestNormalizeQuotes:
    """Tests for normalize_quotes."""

    def test_clean_series_passes_through(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6), _ts(2025, 1, 7)],
            opens=[23600.0, 23700.0],
            highs=[23750.0, 23800.0],
            lows=[23550.0, 23650.0],
            closes=[23700.0, 23750.0],
            volumes=[300000, 310000],
        )
        records = normalize_quotes(raw)

        assert len(records) == 2
        assert records[0].date == date(2025, 1, 6)
        assert records[0].open == 23600
        assert records[0].high == 23750
        assert records[0].low == 23550
        assert records[0].close == 23700
        assert records[0].volume == 300000

    def test_drops_missing_zero_and_negative_closes(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6), _ts(2025, 1, 7), _ts(2025, 1, 8), _ts(2025, 1, 9)],
            opens=[1.0, 1.0, 1.0, 1.0],
            highs=[1.0, 1.0, 1.0, 1.0],
            lows=[1.0, 1.0, 1.0, 1.0],
            closes=[None, 0, -5.0, 23000.0],
            volumes=[1, 1, 1, 1],
        )
        records = normalize_quotes(raw)

        assert [r.date for r in records] == [date(2025, 1, 9)]

    def test_missing_ohl_fall_back_to_same_index_close(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6), _ts(2025, 1, 7)],
            opens=[23000.0, None],
            highs=[23100.0, None],
            lows=[22900.0, -1.0],
            closes=[23050.0, 24000.0],
            volumes=[100, None],
        )
        records = normalize_quotes(raw)

        second = records[1]
        assert second.open == 24000
        assert second.high == 24000
        assert second.low == 24000
        assert second.volume == 0

    def test_short_auxiliary_arrays_treated_as_missing(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6), _ts(2025, 1, 7)],
            opens=[23000.0],
            closes=[23050.0, 23100.0],
        )
        records = normalize_quotes(raw)

        assert records[1].open == 23100
        assert records[1].volume == 0

    def test_values_rounded_to_whole_points_half_up(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6)],
            opens=[23000.5],
            highs=[23100.49],
            lows=[22900.2],
            closes=[23050.5],
            volumes=[1234.5],
        )
        (record,) = normalize_quotes(raw)

        assert record.open == 23001
        assert record.high == 23100
        assert record.low == 22900
        assert record.close == 23051
        assert record.volume == 1235

    def test_ohlc_ordering_is_repaired(self) -> None:
        # high below close and low above open in the raw data
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6)],
            opens=[23000.0],
            highs=[23010.0],
            lows=[23020.0],
            closes=[23100.0],
        )
        (record,) = normalize_quotes(raw)

        assert record.high == 23100
        assert record.low == 23000
        _assert_ordered([record])

    def test_out_of_order_timestamps_are_sorted(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 8), _ts(2025, 1, 6), _ts(2025, 1, 7)],
            closes=[300.0, 100.0, 200.0],
        )
        records = normalize_quotes(raw)

        assert [r.close for r in records] == [100, 200, 300]
        _assert_ordered(records)

    def test_duplicate_days_keep_last_bar(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6, 9, 15), _ts(2025, 1, 6, 15, 30), _ts(2025, 1, 7)],
            closes=[100.0, 150.0, 200.0],
        )
        records = normalize_quotes(raw)

        assert len(records) == 2
        assert records[0].date == date(2025, 1, 6)
        assert records[0].close == 150

    def test_dates_truncated_in_exchange_timezone(self) -> None:
        # 20:00 UTC on Jan 6 is 01:30 IST on Jan 7
        ts = int(datetime(2025, 1, 6, 20, 0, tzinfo=timezone.utc).timestamp())
        raw = RawQuotes(timestamps=[ts], closes=[23000.0])

        assert normalize_quotes(raw)[0].date == date(2025, 1, 7)
        assert normalize_quotes(raw, timezone="UTC")[0].date == date(2025, 1, 6)

    def test_intraday_keeps_bar_times(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6, 9, 15), _ts(2025, 1, 6, 10, 15)],
            closes=[100.0, 110.0],
        )
        records = normalize_quotes(raw, intraday=True)

        assert len(records) == 2
        assert records[0].date < records[1].date
        assert records[1].date.hour == 10

    def test_length_mismatch_raises(self) -> None:
        raw = RawQuotes(timestamps=[_ts(2025, 1, 6), _ts(2025, 1, 7)], closes=[100.0])
        with pytest.raises(MalformedSeries, match="differ in length"):
            normalize_quotes(raw)

    def test_no_valid_records_raises(self) -> None:
        raw = RawQuotes(timestamps=[_ts(2025, 1, 6)], closes=[None])
        with pytest.raises(MalformedSeries, match="no valid records"):
            normalize_quotes(raw)


class TestParseChartPayload:
    """Tests for extracting arrays from the chart API body."""

    def test_extracts_arrays(self, make_chart_payload) -> None:
        payload = make_chart_payload([100.0, 101.0, None])
        raw = parse_chart_payload(payload)

        assert len(raw.timestamps) == 3
        assert raw.closes == [100.0, 101.0, None]
        assert raw.volumes == [250000, 250000, 250000]

    def test_error_field_raises(self) -> None:
        with pytest.raises(MalformedSeries):
            parse_chart_payload({"error": "Yahoo Finance fetch failed"})

    def test_chart_error_raises(self) -> None:
        payload = {"chart": {"result": None, "error": {"code": "Not Found"}}}
        with pytest.raises(MalformedSeries):
            parse_chart_payload(payload)

    def test_missing_timestamp_raises(self, make_chart_payload) -> None:
        payload = make_chart_payload([100.0, 101.0])
        del payload["chart"]["result"][0]["timestamp"]
        with pytest.raises(MalformedSeries, match="missing timestamps"):
            parse_chart_payload(payload)

    def test_missing_quotes_raises(self, make_chart_payload) -> None:
        payload = make_chart_payload([100.0])
        payload["chart"]["result"][0]["indicators"] = {"quote": []}
        with pytest.raises(MalformedSeries):
            parse_chart_payload(payload)

    def test_non_object_raises(self) -> None:
        with pytest.raises(MalformedSeries):
            parse_chart_payload(["not", "a", "dict"])


class TestMalformedShapes:
    """Payloads with the wrong JSON types are reported as MalformedSeries."""

    def test_chart_is_a_list(self) -> None:
        with pytest.raises(MalformedSeries):
            parse_chart_payload({"chart": ["oops"]})

    def test_quote_entry_is_not_an_object(self, make_chart_payload) -> None:
        payload = make_chart_payload([100.0])
        payload["chart"]["result"][0]["indicators"]["quote"] = ["x"]
        with pytest.raises(MalformedSeries):
            parse_chart_payload(payload)

    def test_timestamp_is_a_scalar(self, make_chart_payload) -> None:
        payload = make_chart_payload([100.0])
        payload["chart"]["result"][0]["timestamp"] = 5
        with pytest.raises(MalformedSeries):
            parse_chart_payload(payload)

    def test_quote_field_is_not_an_array(self, make_chart_payload) -> None:
        payload = make_chart_payload([100.0])
        payload["chart"]["result"][0]["indicators"]["quote"][0]["close"] = 100.0
        with pytest.raises(MalformedSeries):
            parse_chart_payload(payload)

    def test_millisecond_timestamps_leave_no_records(self) -> None:
        raw = RawQuotes(timestamps=[1741923900000], closes=[23000.0])
        with pytest.raises(MalformedSeries, match="no valid records"):
            normalize_quotes(raw)

    def test_out_of_range_bar_is_dropped(self) -> None:
        raw = RawQuotes(
            timestamps=[_ts(2025, 1, 6), 1741923900000],
            closes=[23000.0, 23100.0],
        )
        records = normalize_quotes(raw)

        assert [r.close for r in records] == [23000]
