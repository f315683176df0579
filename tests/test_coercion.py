"""Unit tests for cell and timestamp coercion."""

from __future__ import annotations

from datetime import datetime

import pytest

from models.cells import EMPTY, NumericCell, TextCell
from services.coercion import (
    LENIENT_TIMESTAMP_PARSERS,
    STRICT_TIMESTAMP_PARSERS,
    StrictPattern,
    as_double,
    as_lenient_timestamp,
    as_string,
    as_timestamp,
    parse_timestamp_literal,
)


@pytest.mark.parametrize(
    ("cell", "expected"),
    [
        (None, "fallback"),
        (EMPTY, "fallback"),
        (TextCell(""), "fallback"),
        (TextCell("2024/01/05 10:30"), "2024/01/05 10:30"),
        (NumericCell(45292.0), "45292.0"),
        (NumericCell(1.5), "1.5"),
    ],
)
def test_as_string(cell, expected: str) -> None:
    assert as_string(cell, "fallback") == expected


@pytest.mark.parametrize(
    ("cell", "expected"),
    [
        (None, -1.0),
        (EMPTY, -1.0),
        (TextCell(""), -1.0),
        (TextCell("1200.5"), 1200.5),
        (TextCell(" 42 "), 42.0),
        (TextCell("n/a"), -1.0),
        (NumericCell(3.25), 3.25),
    ],
)
def test_as_double(cell, expected: float) -> None:
    assert as_double(cell, -1.0) == expected


def test_strict_parsers_are_tried_in_documented_order() -> None:
    patterns = [
        parser.name for parser in STRICT_TIMESTAMP_PARSERS if isinstance(parser, StrictPattern)
    ]

    assert patterns == ["yyyy/MM/dd HH:mm", "yyyy/MM/dd HH:mm:ss", "MM/dd/yyyy HH:mm"]
    assert STRICT_TIMESTAMP_PARSERS[-1] is parse_timestamp_literal


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2024/01/05 10:30", datetime(2024, 1, 5, 10, 30)),
        ("2024/01/05 10:30:45", datetime(2024, 1, 5, 10, 30)),
        ("2024/01/05 10:30 SAST", datetime(2024, 1, 5, 10, 30)),
        ("2024/1/5 9:05", datetime(2024, 1, 5, 9, 5)),
        ("01/05/2024 10:30", datetime(2024, 1, 5, 10, 30)),
        ("2024-01-05 10:30:00", datetime(2024, 1, 5, 10, 30)),
        ("2024-01-05T10:30", datetime(2024, 1, 5, 10, 30)),
        ("  2024/01/05 10:30  ", datetime(2024, 1, 5, 10, 30)),
    ],
)
def test_as_timestamp_accepts_supported_formats(text: str, expected: datetime) -> None:
    assert as_timestamp(text) == expected


@pytest.mark.parametrize(
    "text",
    [
        "2024/02/30 10:00",
        "2024/13/01 10:00",
        "2024/01/15 25:00",
        "2024/01/15 10:305",
        "13/01/2024 10:00",
        "yesterday",
        "",
    ],
)
def test_as_timestamp_rejects_invalid_calendar_values(text: str) -> None:
    assert as_timestamp(text) is None


def test_as_timestamp_uses_fallback_when_nothing_parses() -> None:
    assert as_timestamp("garbage", "2023-01-01 00:00:00") == datetime(2023, 1, 1)
    assert as_timestamp("garbage", "also garbage") is None
    assert as_timestamp(None, "2023/06/01 12:00") == datetime(2023, 6, 1, 12, 0)


def test_lenient_chain_ends_with_serial_numbers() -> None:
    assert len(LENIENT_TIMESTAMP_PARSERS) == 3
    assert as_lenient_timestamp("45292") == datetime(2024, 1, 1)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2024/01/05 10:30", datetime(2024, 1, 5, 10, 30)),
        ("2024/13/01 00:00", datetime(2025, 1, 1)),
        ("15/03/2024", datetime(2024, 3, 15)),
        ("31/02/2024", datetime(2024, 3, 2)),
        ("15/03/2024 08:00:00", datetime(2024, 3, 15)),
        ("45292.0", datetime(2024, 1, 1)),
        ("45292.5", datetime(2024, 1, 1, 12, 0)),
    ],
)
def test_as_lenient_timestamp(text: str, expected: datetime) -> None:
    assert as_lenient_timestamp(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "not a date", "nan", "2024/03/15"])
def test_as_lenient_timestamp_returns_none_for_unparseable(text: str) -> None:
    assert as_lenient_timestamp(text) is None
