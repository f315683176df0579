from __future__ import annotations

import io
from typing import Any, Callable, Dict, Iterator, List

import openpyxl
import pytest

from datastore.timeseries import TimeSeriesStore

POWER_SAMPLE_HEADER = [
    "Plant Name",
    "Updated Time",
    "Time Zone",
    "Production Power(W)",
    "Consumption Power(W)",
    "Grid Power(W)",
    "Purchasing Power(W)",
    "Feed-in Power(W)",
    "Battery Power(W)",
    "Charging Power(W)",
    "Discharging Power(W)",
    "SoC(%)",
]

WorkbookFactory = Callable[[Dict[str, List[List[Any]]]], bytes]


def build_workbook_bytes(sheets: Dict[str, List[List[Any]]]) -> bytes:
    """Write ``{sheet name: rows}`` into an in-memory .xlsx file."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def xlsx_factory() -> WorkbookFactory:
    return build_workbook_bytes


@pytest.fixture()
def store(tmp_path) -> Iterator[TimeSeriesStore]:
    time_series = TimeSeriesStore(url=f"sqlite:///{tmp_path / 'energy.db'}")
    yield time_series
    time_series.dispose()
