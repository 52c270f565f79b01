"""Clock-time and duration parsing for SMS commands.

Owners type times the way they say them ("3pm", "11:30 pm", "2330") and
durations in compact elapsed-time notation ("90m", "2h30m").  Clock times
are anchored to *today* in the timezone of the ``now`` they are given;
the caller decides whether a time in the past means tomorrow.

Formats are tried in a fixed order and the first match wins, so the more
specific ``H:MM`` forms come before the bare-hour form.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Callable, Optional


class ParseError(ValueError):
    """Raised when a clock time or duration cannot be parsed."""


# ── Clock times ──────────────────────────────────────────────────


def _to_24h(hour: int, meridian: str) -> int:
    if meridian == "am":
        return 0 if hour == 12 else hour
    return 12 if hour == 12 else hour + 12


def _hhmm(match: re.Match) -> tuple[int, int]:
    return int(match.group(1)), int(match.group(2))


def _h_mm_meridian(match: re.Match) -> tuple[int, int]:
    return _to_24h(int(match.group(1)), match.group(3)), int(match.group(2))


def _h_meridian(match: re.Match) -> tuple[int, int]:
    return _to_24h(int(match.group(1)), match.group(2)), 0


_HOUR24 = r"([01]\d|2[0-3])"
_HOUR12 = r"(0?[0-9]|1[0-2])"
_MINUTE = r"([0-5]\d)"

# (name, pattern, extractor) in priority order
CLOCK_FORMATS: list[tuple[str, re.Pattern, Callable[[re.Match], tuple[int, int]]]] = [
    ("1504", re.compile(rf"^{_HOUR24}{_MINUTE}$"), _hhmm),
    ("3:04pm", re.compile(rf"^{_HOUR12}:{_MINUTE}(am|pm)$"), _h_mm_meridian),
    ("3:04 pm", re.compile(rf"^{_HOUR12}:{_MINUTE} (am|pm)$"), _h_mm_meridian),
    ("3pm", re.compile(rf"^{_HOUR12}(am|pm)$"), _h_meridian),
]


def parse_clock_time(text: str, now: datetime) -> datetime:
    """Parse *text* as a time of day on ``now``'s date.

    Only the time of day is taken from *text*; date, timezone and DST
    fold all come from *now*.

    Raises:
        ParseError: if no known format matches.
    """
    for _name, pattern, extract in CLOCK_FORMATS:
        match = pattern.match(text)
        if match is None:
            continue
        hour, minute = extract(match)
        return now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    raise ParseError(f"Can't parse string as time: {text}")


# ── Durations ────────────────────────────────────────────────────

# Nanoseconds per unit
_UNITS: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
}

# Longest accepted duration, a little over 2562047h
MAX_DURATION_NS = 2**63 - 1

_TERM = re.compile(r"([0-9]*)(?:\.([0-9]*))?([a-zµμ]+)")


def parse_duration(text: str) -> timedelta:
    """Parse an elapsed-time string such as ``90m``, ``2h30m`` or ``1.5h``.

    A bare ``0`` is accepted.  Negative durations and totals beyond
    ``MAX_DURATION_NS`` are rejected.  Sub-microsecond remainders are
    truncated.

    Raises:
        ParseError: on empty input, unknown units, trailing garbage or an
            out-of-range total.
    """
    orig = text
    if text.startswith("+"):
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ParseError(f"invalid duration {orig!r}")

    total_ns = 0
    pos = 0
    while pos < len(text):
        match = _TERM.match(text, pos)
        if match is None:
            raise ParseError(f"invalid duration {orig!r}")
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise ParseError(f"invalid duration {orig!r}")
        scale = _UNITS.get(unit)
        if scale is None:
            raise ParseError(f"unknown unit {unit!r} in duration {orig!r}")
        total_ns += int(whole or "0") * scale
        if frac:
            total_ns += int(frac) * scale // 10 ** len(frac)
        if total_ns > MAX_DURATION_NS:
            raise ParseError(f"invalid duration {orig!r}")
        pos = match.end()
    return timedelta(microseconds=total_ns // 1000)


# ── Display ──────────────────────────────────────────────────────

DEFAULT_DATE_FORMAT = "%a %-d %b, %-I:%M%P"


def format_timestamp(dt: Optional[datetime], layout: str = DEFAULT_DATE_FORMAT) -> str:
    """Render *dt* with a strftime *layout*.

    On top of the usual directives, ``%-d``, ``%-I`` and ``%-H`` give
    unpadded numbers and ``%P`` a lowercase am/pm, on every platform.
    ``None`` renders as an empty string.
    """
    if dt is None:
        return ""
    hour12 = dt.hour % 12 or 12
    layout = (
        layout.replace("%-d", str(dt.day))
        .replace("%-I", str(hour12))
        .replace("%-H", str(dt.hour))
        .replace("%P", "am" if dt.hour < 12 else "pm")
    )
    return dt.strftime(layout)
