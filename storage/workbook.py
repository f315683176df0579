"""Decoded workbook abstraction plus the openpyxl-backed loader."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from openpyxl import load_workbook as open_workbook
from openpyxl.utils.datetime import to_excel
from openpyxl.utils.exceptions import InvalidFileException

from models.cells import EMPTY, Cell, NumericCell, TextCell

SUPPORTED_EXTENSIONS = (".xlsx", ".xls")


@dataclass
class Sheet:
    name: str
    rows: list[list[Cell]] = field(default_factory=list)


@dataclass
class Workbook:
    sheets: list[Sheet] = field(default_factory=list)

    @property
    def sheet_count(self) -> int:
        return len(self.sheets)

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    def first_sheet(self) -> Optional[Sheet]:
        return self.sheets[0] if self.sheets else None

    def find_sheet(self, name: str) -> Optional[Sheet]:
        """Look a sheet up by name, ignoring case."""
        wanted = name.casefold()
        for sheet in self.sheets:
            if sheet.name.casefold() == wanted:
                return sheet
        return None


def cell_from_value(value: Any) -> Cell:
    """Map an openpyxl cell value onto the cell variant.

    Date-formatted cells come back as their spreadsheet serial number, which is
    what the file actually stores.
    """
    if value is None or value == "":
        return EMPTY
    if isinstance(value, bool):
        return NumericCell(1.0 if value else 0.0)
    if isinstance(value, (int, float)):
        return NumericCell(float(value))
    if isinstance(value, (datetime, date, time, timedelta)):
        return NumericCell(float(to_excel(value)))
    if isinstance(value, str):
        return TextCell(value)
    return TextCell(str(value))


def has_supported_extension(filename: Optional[str]) -> bool:
    if not filename:
        return False
    return filename.lower().endswith(SUPPORTED_EXTENSIONS)


def load_workbook(data: bytes) -> Workbook:
    """Decode workbook bytes into sheets of typed cells."""
    try:
        book = open_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValueError(f"Unable to read workbook: {exc}") from exc

    try:
        sheets = [
            Sheet(
                name=worksheet.title,
                rows=[
                    [cell_from_value(value) for value in row]
                    for row in worksheet.iter_rows(values_only=True)
                ],
            )
            for worksheet in book.worksheets
        ]
    finally:
        book.close()
    return Workbook(sheets=sheets)
