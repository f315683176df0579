"""Pydantic schemas shared by the services and the HTTP API layer."""

from __future__ import annotations

from datetime import date as CalendarDate, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from models.records import RecordKind


class ImportResult(BaseModel):
    """Summary of one batch import; built fresh per call, never persisted."""

    inserted_count: int = Field(default=0, ge=0)
    updated_count: int = Field(
        default=0,
        ge=0,
        description="Reserved. Upserts are not told apart from inserts, so this stays 0.",
    )
    first_date: Optional[datetime] = None
    last_date: Optional[datetime] = None
    errors: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def track_date(self, value: datetime) -> None:
        if self.first_date is None or value < self.first_date:
            self.first_date = value
        if self.last_date is None or value > self.last_date:
            self.last_date = value


class UploadPreview(BaseModel):
    """Response after an export has been validated and staged for import."""

    file_id: str = Field(..., description="Identifier to pass to the import endpoint.")
    record_kind: RecordKind
    total_records: int = Field(..., ge=0)
    preview_data: List[Dict[str, Any]] = Field(default_factory=list)


class ImportRequest(BaseModel):
    """Either a staged upload id or rows to import directly."""

    file_id: Optional[str] = None
    data: Optional[List[Dict[str, Any]]] = None


class ProductionStat(BaseModel):
    date: CalendarDate
    energy_units: float


class DatabaseStatus(BaseModel):
    connected: bool
    message: str
    api_status: str
    last_checked: datetime


class LatestRecords(BaseModel):
    power_samples: Optional[datetime] = None
    meter_readings: Optional[datetime] = None
