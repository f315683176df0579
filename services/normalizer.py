"""Turn decoded workbook rows into canonical time-series records."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from models.cells import Cell, TextCell, cell_at
from models.records import MeterReadingRecord, PowerSampleRecord, RecordKind
from services.coercion import as_double, as_lenient_timestamp, as_string, as_timestamp
from storage.workbook import Workbook

logger = logging.getLogger(__name__)

POWER_SAMPLE_HEADER_PREFIXES = (
    "Plant",
    "Updated",
    "Time",
    "Production",
    "Consumption",
    "Grid",
    "Purchasing",
    "Feed-in",
    "Battery",
    "Charging",
    "Discharging",
    "SoC",
)
POWER_SAMPLE_CUTOFF = datetime(2020, 1, 1)
METER_READING_SHEET = "Elektrisiteit Lesings"

_TIMESTAMP_COLUMN = 1
# Columns 3..11 map onto the power fields in this order.
_POWER_FIELDS = (
    "production_power",
    "consume_power",
    "grid_power",
    "purchase_power",
    "feed_in",
    "battery_power",
    "charge_power",
    "discharge_power",
    "state_of_charge",
)
_FIRST_POWER_COLUMN = 3


class WorkbookValidationError(ValueError):
    """The workbook does not have the structure of the expected export."""


def _trim_trailing_blanks(row: list[Cell]) -> list[Cell]:
    end = len(row)
    while end > 0 and as_string(row[end - 1], "").strip() == "":
        end -= 1
    return row[:end]


def validate_power_sample_header(row: list[Cell]) -> None:
    header = _trim_trailing_blanks(row)
    expected = len(POWER_SAMPLE_HEADER_PREFIXES)
    if len(header) != expected:
        raise WorkbookValidationError(
            "Invalid power sample workbook: expected "
            f"{expected} header columns, found {len(header)}"
        )
    for index, prefix in enumerate(POWER_SAMPLE_HEADER_PREFIXES):
        cell = header[index]
        if not isinstance(cell, TextCell) or not cell.value.startswith(prefix):
            raise WorkbookValidationError(
                "Invalid power sample workbook: column headers do not match the "
                f"expected format (column {index} should start with {prefix!r})"
            )


class RecordNormalizer:
    """Row-level normalization for both supported export schemas."""

    def __init__(self, cutoff: datetime = POWER_SAMPLE_CUTOFF) -> None:
        self.cutoff = cutoff

    def normalize(self, kind: RecordKind, workbook: Workbook) -> list:
        if kind is RecordKind.power_samples:
            return self.normalize_power_sample_workbook(workbook)
        return self.normalize_meter_readings(workbook)

    def normalize_power_sample_workbook(self, workbook: Workbook) -> list[PowerSampleRecord]:
        sheet = workbook.first_sheet()
        if sheet is None:
            raise WorkbookValidationError("Workbook contains no sheets")
        return self.normalize_power_samples(sheet.rows)

    def normalize_power_samples(self, rows: Iterable[list[Cell]]) -> list[PowerSampleRecord]:
        """Validate the header row, then parse every data row after it."""
        iterator = iter(rows)
        header = next(iterator, None)
        if header is None:
            raise WorkbookValidationError("Invalid power sample workbook: header row missing")
        validate_power_sample_header(header)

        records: list[PowerSampleRecord] = []
        for row_number, row in enumerate(iterator, start=2):
            try:
                record = self.parse_power_sample_row(row, row_number)
            except Exception as exc:
                logger.warning(
                    "Skipping power sample row after parse error",
                    extra={"row_number": row_number, "reason": str(exc)},
                )
                continue
            if record is not None:
                records.append(record)

        logger.info(
            "Normalized power sample rows",
            extra={"record_kind": RecordKind.power_samples.value, "record_count": len(records)},
        )
        return records

    def parse_power_sample_row(
        self, row: list[Cell], row_number: Optional[int] = None
    ) -> Optional[PowerSampleRecord]:
        raw_timestamp = as_string(cell_at(row, _TIMESTAMP_COLUMN), "")
        if not raw_timestamp:
            return None

        timestamp = as_timestamp(raw_timestamp)
        if timestamp is None:
            logger.warning(
                "Skipping row with unparseable timestamp",
                extra={"row_number": row_number, "reason": raw_timestamp},
            )
            return None
        if timestamp < self.cutoff:
            logger.debug(
                "Skipping row before cutoff",
                extra={"row_number": row_number, "record_key": timestamp},
            )
            return None

        values = {
            name: as_double(cell_at(row, _FIRST_POWER_COLUMN + offset), 0.0)
            for offset, name in enumerate(_POWER_FIELDS)
        }
        return PowerSampleRecord(timestamp=timestamp, **values)

    def normalize_meter_readings(self, workbook: Workbook) -> list[MeterReadingRecord]:
        sheet = workbook.find_sheet(METER_READING_SHEET)
        if sheet is None:
            raise WorkbookValidationError(f"Sheet '{METER_READING_SHEET}' not found in workbook")

        records: list[MeterReadingRecord] = []
        for row_number, row in enumerate(sheet.rows[1:], start=2):
            try:
                record = self.parse_meter_reading_row(row, row_number)
            except Exception as exc:
                logger.warning(
                    "Skipping meter reading row after parse error",
                    extra={"sheet": sheet.name, "row_number": row_number, "reason": str(exc)},
                )
                continue
            if record is not None:
                records.append(record)

        logger.info(
            "Normalized meter reading rows",
            extra={
                "record_kind": RecordKind.meter_readings.value,
                "sheet": sheet.name,
                "record_count": len(records),
            },
        )
        return records

    def parse_meter_reading_row(
        self, row: list[Cell], row_number: Optional[int] = None
    ) -> Optional[MeterReadingRecord]:
        raw_date = as_string(cell_at(row, 0), "")
        if not raw_date:
            return None

        reading_date = as_lenient_timestamp(raw_date)
        if reading_date is None:
            logger.warning(
                "Skipping row with unparseable reading date",
                extra={"row_number": row_number, "reason": raw_date},
            )
            return None

        return MeterReadingRecord(
            reading_date=reading_date,
            reading_value=as_double(cell_at(row, 1), 0.0),
            reading_amount=as_double(cell_at(row, 2), 0.0),
            reading_notes=as_string(cell_at(row, 3), ""),
        )
