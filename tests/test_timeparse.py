"""Tests for clock-time and duration parsing."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from doorman.timeparse import (
    CLOCK_FORMATS,
    ParseError,
    format_timestamp,
    parse_clock_time,
    parse_duration,
)

TZ = ZoneInfo("America/Los_Angeles")
NOW = datetime(2024, 6, 15, 14, 27, 33, 123456, tzinfo=TZ)


# ── Clock times ─────────────────────────────────────────────────────


class TestParseClockTime:
    @pytest.mark.parametrize(
        "text, hour, minute",
        [
            ("1504", 15, 4),
            ("0930", 9, 30),
            ("0000", 0, 0),
            ("2359", 23, 59),
            ("3:04pm", 15, 4),
            ("11:30am", 11, 30),
            ("12:15am", 0, 15),
            ("12:45pm", 12, 45),
            ("3:04 pm", 15, 4),
            ("7:00 am", 7, 0),
            ("3pm", 15, 0),
            ("11pm", 23, 0),
            ("12am", 0, 0),
            ("12pm", 12, 0),
            ("1am", 1, 0),
            ("09:30am", 9, 30),
            ("03pm", 15, 0),
            ("0:30am", 0, 30),
            ("0pm", 12, 0),
        ],
    )
    def test_formats(self, text, hour, minute):
        t = parse_clock_time(text, NOW)
        assert (t.hour, t.minute) == (hour, minute)

    def test_keeps_todays_date(self):
        t = parse_clock_time("11pm", NOW)
        assert t.date() == NOW.date()

    def test_keeps_timezone(self):
        t = parse_clock_time("11pm", NOW)
        assert t.tzinfo is TZ

    def test_zeroes_seconds(self):
        t = parse_clock_time("3:04pm", NOW)
        assert t.second == 0
        assert t.microsecond == 0

    @pytest.mark.parametrize(
        "text",
        ["", "noon", "25:00", "2400", "930", "13pm", "013pm", "3:4pm", "3:04", "3PM", "3 pm", " 3pm", "3:60pm"],
    )
    def test_rejects(self, text):
        with pytest.raises(ParseError):
            parse_clock_time(text, NOW)

    def test_error_names_input(self):
        with pytest.raises(ParseError, match="Can't parse string as time: noon"):
            parse_clock_time("noon", NOW)

    def test_parse_error_is_value_error(self):
        assert issubclass(ParseError, ValueError)

    def test_format_priority_order(self):
        names = [name for name, _, _ in CLOCK_FORMATS]
        assert names == ["1504", "3:04pm", "3:04 pm", "3pm"]


# ── Durations ──────────────────────────────────────────────────────


class TestParseDuration:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("90m", timedelta(minutes=90)),
            ("2h30m", timedelta(hours=2, minutes=30)),
            ("1h", timedelta(hours=1)),
            ("45s", timedelta(seconds=45)),
            ("1.5h", timedelta(minutes=90)),
            (".5h", timedelta(minutes=30)),
            ("1h1m1s", timedelta(hours=1, minutes=1, seconds=1)),
            ("500ms", timedelta(milliseconds=500)),
            ("10us", timedelta(microseconds=10)),
            ("0", timedelta(0)),
            ("+10m", timedelta(minutes=10)),
            ("1500ns", timedelta(microseconds=1)),
            ("1.h", timedelta(hours=1)),
            ("2562047h", timedelta(hours=2562047)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize(
        "text",
        ["", "10", "abc", "10x", "h", "-5m", "5 m", "5m ", "2h30", "1d", "+", ".h"],
    )
    def test_invalid(self, text):
        with pytest.raises(ParseError):
            parse_duration(text)

    @pytest.mark.parametrize("text", ["99999999999h", "2562048h", "9223372036s", "2562047h1h"])
    def test_rejects_out_of_range(self, text):
        with pytest.raises(ParseError):
            parse_duration(text)

    def test_nanoseconds_truncate(self):
        assert parse_duration("999ns") == timedelta(0)
        assert parse_duration("1us999ns") == timedelta(microseconds=1)

    def test_result_is_non_negative(self):
        assert parse_duration("0s") >= timedelta(0)


# ── Display ────────────────────────────────────────────────────────


class TestFormatTimestamp:
    def test_default_layout(self):
        dt = datetime(2006, 1, 2, 15, 4, tzinfo=TZ)
        assert format_timestamp(dt) == "Mon 2 Jan, 3:04pm"

    def test_morning(self):
        dt = datetime(2024, 6, 15, 9, 5, tzinfo=TZ)
        assert format_timestamp(dt) == "Sat 15 Jun, 9:05am"

    def test_midnight_is_twelve(self):
        dt = datetime(2024, 6, 15, 0, 30, tzinfo=TZ)
        assert format_timestamp(dt) == "Sat 15 Jun, 12:30am"

    def test_custom_layout(self):
        dt = datetime(2024, 6, 15, 18, 0, tzinfo=TZ)
        assert format_timestamp(dt, "%Y-%m-%d %-H:%M") == "2024-06-15 18:00"

    def test_none(self):
        assert format_timestamp(None) == ""
