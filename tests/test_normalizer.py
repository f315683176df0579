from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import pytest

from conftest import POWER_SAMPLE_HEADER
from models.cells import EMPTY, Cell, NumericCell, TextCell
from models.records import MeterReadingRecord, PowerSampleRecord, RecordKind
from services.normalizer import RecordNormalizer, WorkbookValidationError
from storage.workbook import Sheet, Workbook


def _cell(value: Any) -> Cell:
    if value is None:
        return EMPTY
    if isinstance(value, (int, float)):
        return NumericCell(float(value))
    return TextCell(value)


def _row(*values: Any) -> list[Cell]:
    return [_cell(value) for value in values]


def _header() -> list[Cell]:
    return _row(*POWER_SAMPLE_HEADER)


def _sample_row(updated: Optional[str], *powers: Any) -> list[Cell]:
    return _row("Home", updated, "UTC+02:00", *powers)


def test_power_samples_are_normalized() -> None:
    rows = [
        _header(),
        _sample_row("2024/01/05 10:30", 1500, 800, -200, 0, 200, 500, 500, 0, 87),
        _sample_row("2024/01/05 10:35:10", "1200.5", "900", "n/a", None, 0, 0, 0, 0, "55"),
    ]

    records = RecordNormalizer().normalize_power_samples(rows)

    assert records == [
        PowerSampleRecord(
            timestamp=datetime(2024, 1, 5, 10, 30),
            production_power=1500.0,
            consume_power=800.0,
            grid_power=-200.0,
            purchase_power=0.0,
            feed_in=200.0,
            battery_power=500.0,
            charge_power=500.0,
            discharge_power=0.0,
            state_of_charge=87.0,
        ),
        PowerSampleRecord(
            timestamp=datetime(2024, 1, 5, 10, 35),
            production_power=1200.5,
            consume_power=900.0,
            state_of_charge=55.0,
        ),
    ]


def test_rows_before_2020_are_skipped() -> None:
    rows = [
        _header(),
        _sample_row("2019/12/31 10:30", 100),
        _sample_row("2020/01/01 00:00", 200),
    ]

    records = RecordNormalizer().normalize_power_samples(rows)

    assert [record.timestamp for record in records] == [datetime(2020, 1, 1)]


def test_blank_and_unparseable_timestamps_are_skipped(caplog) -> None:
    rows = [
        _header(),
        _sample_row(None, 100),
        _sample_row("", 100),
        _sample_row("31/12/2024 10:00", 100),
        _row("Home"),
        _sample_row("2024/03/01 12:00"),
    ]

    with caplog.at_level(logging.WARNING, logger="services.normalizer"):
        records = RecordNormalizer().normalize_power_samples(rows)

    assert records == [PowerSampleRecord(timestamp=datetime(2024, 3, 1, 12, 0))]
    messages = [record.getMessage() for record in caplog.records]
    assert any("unparseable timestamp" in message for message in messages)
    assert any(getattr(record, "row_number", None) == 4 for record in caplog.records)


def test_row_level_exceptions_are_logged_and_skipped(caplog) -> None:
    class ExplodingNormalizer(RecordNormalizer):
        def parse_power_sample_row(self, row, row_number=None):
            if row_number == 2:
                raise RuntimeError("boom")
            return super().parse_power_sample_row(row, row_number)

    rows = [
        _header(),
        _sample_row("2024/01/05 10:30", 1),
        _sample_row("2024/01/05 10:35", 2),
    ]

    with caplog.at_level(logging.WARNING, logger="services.normalizer"):
        records = ExplodingNormalizer().normalize_power_samples(rows)

    assert [record.production_power for record in records] == [2.0]
    assert any(getattr(record, "reason", None) == "boom" for record in caplog.records)


@pytest.mark.parametrize(
    "header",
    [
        POWER_SAMPLE_HEADER[:11],
        POWER_SAMPLE_HEADER + ["Extra"],
        ["Plant Name", "Time"] + POWER_SAMPLE_HEADER[2:],
        ["plant name"] + POWER_SAMPLE_HEADER[1:],
    ],
)
def test_invalid_header_rejects_sheet_before_rows(header: list[str]) -> None:
    parsed_rows: list[int] = []

    class SpyNormalizer(RecordNormalizer):
        def parse_power_sample_row(self, row, row_number=None):
            parsed_rows.append(row_number)
            return super().parse_power_sample_row(row, row_number)

    rows = [_row(*header), _sample_row("2024/01/05 10:30", 1)]

    with pytest.raises(WorkbookValidationError):
        SpyNormalizer().normalize_power_samples(rows)

    assert parsed_rows == []


def test_numeric_header_cell_is_rejected() -> None:
    header = _header()
    header[5] = NumericCell(5.0)

    with pytest.raises(WorkbookValidationError, match="column 5"):
        RecordNormalizer().normalize_power_samples([header])


def test_trailing_blank_header_cells_are_ignored() -> None:
    rows = [_header() + [EMPTY, TextCell("")], _sample_row("2024/01/05 10:30", 7)]

    records = RecordNormalizer().normalize_power_samples(rows)

    assert len(records) == 1


def test_empty_sheet_and_empty_workbook_are_rejected() -> None:
    normalizer = RecordNormalizer()

    with pytest.raises(WorkbookValidationError, match="header row missing"):
        normalizer.normalize_power_samples([])
    with pytest.raises(WorkbookValidationError, match="no sheets"):
        normalizer.normalize_power_sample_workbook(Workbook())


def test_power_sample_workbook_uses_first_sheet() -> None:
    workbook = Workbook(
        sheets=[
            Sheet(name="Export", rows=[_header(), _sample_row("2024/01/05 10:30", 3)]),
            Sheet(name="Notes", rows=[_row("ignored")]),
        ]
    )

    records = RecordNormalizer().normalize(RecordKind.power_samples, workbook)

    assert [record.production_power for record in records] == [3.0]


def test_meter_readings_are_normalized() -> None:
    workbook = Workbook(
        sheets=[
            Sheet(name="Summary", rows=[_row("whatever")]),
            Sheet(
                name="ELEKTRISITEIT LESINGS",
                rows=[
                    _row("Datum", "Lesing", "Bedrag", "Notas"),
                    _row("15/03/2024", 12345.5, "812.40", "estimated"),
                    _row(45292, "12000", None, None),
                    _row(None, 1, 2, "no date"),
                    _row("not a date", 1, 2, None),
                    _row("2024/04/15 08:30", None, None, 7),
                ],
            ),
        ]
    )

    records = RecordNormalizer().normalize(RecordKind.meter_readings, workbook)

    assert records == [
        MeterReadingRecord(
            reading_date=datetime(2024, 3, 15),
            reading_value=12345.5,
            reading_amount=812.4,
            reading_notes="estimated",
        ),
        MeterReadingRecord(reading_date=datetime(2024, 1, 1), reading_value=12000.0),
        MeterReadingRecord(
            reading_date=datetime(2024, 4, 15, 8, 30),
            reading_notes="7.0",
        ),
    ]


def test_missing_meter_reading_sheet_is_rejected() -> None:
    workbook = Workbook(sheets=[Sheet(name="Sheet1", rows=[_row("Datum")])])

    with pytest.raises(WorkbookValidationError, match="Elektrisiteit Lesings"):
        RecordNormalizer().normalize_meter_readings(workbook)


def test_timestamp_suffixes_are_ignored() -> None:
    rows = [
        _header(),
        _sample_row("2024/01/15 10:30 SAST", 10),
        _sample_row("2024/01/15 10:35:59", 20),
    ]

    records = RecordNormalizer().normalize_power_samples(rows)

    assert [record.timestamp for record in records] == [
        datetime(2024, 1, 15, 10, 30),
        datetime(2024, 1, 15, 10, 35),
    ]
