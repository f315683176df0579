from __future__ import annotations

from datetime import date, datetime

import pytest

from models.cells import EMPTY, NumericCell, TextCell
from storage.workbook import Sheet, Workbook, cell_from_value, has_supported_extension, load_workbook


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, EMPTY),
        ("", EMPTY),
        ("text", TextCell("text")),
        (3, NumericCell(3.0)),
        (2.5, NumericCell(2.5)),
        (True, NumericCell(1.0)),
        (datetime(2024, 1, 1), NumericCell(45292.0)),
        (datetime(2024, 1, 1, 12, 0), NumericCell(45292.5)),
        (date(2024, 1, 1), NumericCell(45292.0)),
    ],
)
def test_cell_from_value(value, expected) -> None:
    assert cell_from_value(value) == expected


@pytest.mark.parametrize(
    ("filename", "supported"),
    [
        ("export.xlsx", True),
        ("EXPORT.XLSX", True),
        ("legacy.xls", True),
        ("export.csv", False),
        ("xlsx", False),
        (None, False),
        ("", False),
    ],
)
def test_has_supported_extension(filename, supported: bool) -> None:
    assert has_supported_extension(filename) is supported


def test_load_workbook_decodes_every_sheet(xlsx_factory) -> None:
    data = xlsx_factory(
        {
            "Export": [["Updated Time", "Power"], ["2024/01/05 10:30", 1500]],
            "Elektrisiteit Lesings": [["Datum", "Lesing"], [datetime(2024, 1, 1), 12.5]],
        }
    )

    workbook = load_workbook(data)

    assert workbook.sheet_count == 2
    assert workbook.sheet_names == ["Export", "Elektrisiteit Lesings"]
    first = workbook.first_sheet()
    assert first is not None
    assert first.rows == [
        [TextCell("Updated Time"), TextCell("Power")],
        [TextCell("2024/01/05 10:30"), NumericCell(1500.0)],
    ]
    readings = workbook.find_sheet("elektrisiteit lesings")
    assert readings is not None
    assert readings.rows[1] == [NumericCell(45292.0), NumericCell(12.5)]


def test_load_workbook_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="Unable to read workbook"):
        load_workbook(b"this is not a spreadsheet")


def test_workbook_lookups_on_empty_workbook() -> None:
    workbook = Workbook()

    assert workbook.first_sheet() is None
    assert workbook.find_sheet("anything") is None


def test_find_sheet_returns_first_case_insensitive_match() -> None:
    first = Sheet(name="Readings")
    workbook = Workbook(sheets=[Sheet(name="Other"), first, Sheet(name="READINGS")])

    assert workbook.find_sheet("readings") is first
