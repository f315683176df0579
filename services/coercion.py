"""Best-effort conversion of raw spreadsheet cells into typed values.

Nothing in this module raises for bad input: every helper falls back to the
caller-supplied default (or ``None`` for timestamps).

Timestamp parsing runs through ordered tuples of parser callables; the first
parser that succeeds wins. ``STRICT_TIMESTAMP_PARSERS`` is used for inverter
exports, ``LENIENT_TIMESTAMP_PARSERS`` for utility meter readings.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from models.cells import Cell, NumericCell, TextCell

TimestampParser = Callable[[str], datetime]

SPREADSHEET_EPOCH = datetime(1899, 12, 30)
_MILLIS_PER_DAY = 86_400_000


def as_string(cell: Optional[Cell], default: str) -> str:
    match cell:
        case TextCell(value=value):
            return value if value else default
        case NumericCell(value=value):
            return str(float(value))
        case _:
            return default


def as_double(cell: Optional[Cell], default: float) -> float:
    match cell:
        case NumericCell(value=value):
            return float(value)
        case TextCell(value=value):
            if not value:
                return default
            try:
                return float(value)
            except ValueError:
                return default
        case _:
            return default


@dataclass(frozen=True)
class StrictPattern:
    """Parse a leading date-time with fixed field order; trailing text is ignored.

    ``2024/01/15 10:30 SAST`` read as ``yyyy/MM/dd HH:mm`` is 10:30 on the
    15th. Impossible calendar values such as 30 February are rejected.
    """

    name: str
    regex: re.Pattern[str]
    fields: tuple[str, ...]

    def __call__(self, text: str) -> datetime:
        match = self.regex.match(text)
        if match is None:
            raise ValueError(f"{text!r} does not match {self.name}")
        return datetime(**dict(zip(self.fields, (int(group) for group in match.groups()))))


def parse_timestamp_literal(text: str) -> datetime:
    """Machine-readable ``YYYY-MM-DD[ T]HH:MM[:SS[.ffffff]]`` literal."""
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class RollingPattern:
    """Regex-driven parser whose out-of-range fields roll over.

    ``12/13/2024`` read as ``dd/MM/yyyy`` becomes 12 January 2025, the way a
    lenient calendar would interpret it. Only the leading part of the text has
    to match.
    """

    name: str
    regex: re.Pattern[str]
    fields: tuple[str, ...]

    def __call__(self, text: str) -> datetime:
        match = self.regex.match(text)
        if match is None:
            raise ValueError(f"{text!r} does not match {self.name}")
        values = dict(zip(self.fields, (int(group) for group in match.groups())))
        return _rolled_datetime(**values)


def _rolled_datetime(
    year: int, month: int, day: int, hour: int = 0, minute: int = 0
) -> datetime:
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1) + timedelta(days=day - 1, hours=hour, minutes=minute)


def parse_spreadsheet_serial(text: str) -> datetime:
    """Interpret ``text`` as a day count since the spreadsheet epoch."""
    serial = float(text)
    if not math.isfinite(serial):
        raise ValueError(f"{text!r} is not a finite serial date")
    return SPREADSHEET_EPOCH + timedelta(milliseconds=int(serial * _MILLIS_PER_DAY))


STRICT_TIMESTAMP_PARSERS: tuple[TimestampParser, ...] = (
    StrictPattern(
        name="yyyy/MM/dd HH:mm",
        regex=re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2}) (\d{1,2}):(\d{1,2})(?!\d)"),
        fields=("year", "month", "day", "hour", "minute"),
    ),
    StrictPattern(
        name="yyyy/MM/dd HH:mm:ss",
        regex=re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2}) (\d{1,2}):(\d{1,2}):(\d{1,2})(?!\d)"),
        fields=("year", "month", "day", "hour", "minute", "second"),
    ),
    StrictPattern(
        name="MM/dd/yyyy HH:mm",
        regex=re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4}) (\d{1,2}):(\d{1,2})(?!\d)"),
        fields=("month", "day", "year", "hour", "minute"),
    ),
    parse_timestamp_literal,
)

LENIENT_TIMESTAMP_PARSERS: tuple[TimestampParser, ...] = (
    RollingPattern(
        name="yyyy/MM/dd HH:mm",
        regex=re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2}) (\d{1,2}):(\d{1,2})"),
        fields=("year", "month", "day", "hour", "minute"),
    ),
    RollingPattern(
        name="dd/MM/yyyy",
        regex=re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"),
        fields=("day", "month", "year"),
    ),
    parse_spreadsheet_serial,
)


def first_parsed(text: str, parsers: Sequence[TimestampParser]) -> Optional[datetime]:
    for parser in parsers:
        try:
            return parser(text)
        except (ValueError, OverflowError):
            continue
    return None


def as_timestamp(text: Optional[str], fallback: Optional[str] = None) -> Optional[datetime]:
    """Parse ``text`` with the strict chain.

    When every parser fails the ``fallback`` text is parsed instead; ``None``
    is returned if there is no usable fallback either.
    """
    candidate = (text or "").strip()
    if candidate:
        parsed = first_parsed(candidate, STRICT_TIMESTAMP_PARSERS)
        if parsed is not None:
            return parsed
    if fallback is None:
        return None
    return first_parsed(fallback.strip(), STRICT_TIMESTAMP_PARSERS)


def as_lenient_timestamp(text: Optional[str]) -> Optional[datetime]:
    candidate = (text or "").strip()
    if not candidate:
        return None
    return first_parsed(candidate, LENIENT_TIMESTAMP_PARSERS)
