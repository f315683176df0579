"""Upload, import and reporting orchestration around the ingestion core."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.schemas import (
    DatabaseStatus,
    ImportResult,
    LatestRecords,
    ProductionStat,
    UploadPreview,
)
from datastore.error_log import ErrorLog
from datastore.timeseries import TimeSeriesStore, build_default_store
from models.cells import EMPTY, Cell, NumericCell, TextCell
from models.records import MeterReadingRecord, PowerSampleRecord, RecordKind
from services.aggregator import DEFAULT_LIMIT_DAYS, TimeWeightedAggregator
from services.coercion import as_double, as_string, parse_timestamp_literal
from services.importer import BatchImporter
from services.normalizer import RecordNormalizer
from settings import get_settings
from storage.uploads import UploadStaging, build_default_staging
from storage.workbook import SUPPORTED_EXTENSIONS, has_supported_extension, load_workbook

logger = logging.getLogger(__name__)

# Display name used in previews first, then the accepted JSON spellings.
_POWER_SAMPLE_FIELDS: Dict[str, Sequence[str]] = {
    "timestamp": ("Updated", "updated", "timestamp"),
    "production_power": ("Production Power", "productionPower", "production_power"),
    "consume_power": ("Consumption Power", "consumePower", "consume_power"),
    "grid_power": ("Grid Power", "gridPower", "grid_power"),
    "purchase_power": ("Purchasing Power", "purchasePower", "purchase_power"),
    "feed_in": ("Feed-in", "feedIn", "feed_in"),
    "battery_power": ("Battery Power", "batteryPower", "battery_power"),
    "charge_power": ("Charging Power", "chargePower", "charge_power"),
    "discharge_power": ("Discharging Power", "dischargePower", "discharge_power"),
    "state_of_charge": ("SoC", "soc", "stateOfCharge", "state_of_charge"),
}
_METER_READING_FIELDS: Dict[str, Sequence[str]] = {
    "reading_date": ("Reading Date", "readingDate", "reading_date"),
    "reading_value": ("Reading Value", "readingValue", "reading_value"),
    "reading_amount": ("Reading Amount", "readingAmount", "reading_amount"),
    "reading_notes": ("Reading Notes", "readingNotes", "reading_notes"),
}
_FIELDS_BY_KIND = {
    RecordKind.power_samples: _POWER_SAMPLE_FIELDS,
    RecordKind.meter_readings: _METER_READING_FIELDS,
}


class IngestionService:
    """Coordinates staging, normalization, import and production statistics."""

    def __init__(
        self,
        staging: UploadStaging,
        store: TimeSeriesStore,
        importer: BatchImporter,
        normalizer: Optional[RecordNormalizer] = None,
        aggregator: Optional[TimeWeightedAggregator] = None,
        preview_limit: int = 10,
    ) -> None:
        self.staging = staging
        self.store = store
        self.importer = importer
        self.normalizer = normalizer or RecordNormalizer()
        self.aggregator = aggregator or TimeWeightedAggregator()
        self.preview_limit = preview_limit

    def stage_upload(self, kind: RecordKind, filename: Optional[str], contents: bytes) -> UploadPreview:
        """Validate an export, keep it for a later import and return a preview."""
        if not has_supported_extension(filename):
            raise ValueError(
                "Invalid file format. Please upload an Excel file "
                f"({', '.join(SUPPORTED_EXTENSIONS)})."
            )
        if not contents:
            raise ValueError("Uploaded file is empty.")

        records = self.normalizer.normalize(kind, load_workbook(contents))
        upload = self.staging.stage(kind, filename or "upload.xlsx", contents, len(records))
        return UploadPreview(
            file_id=upload.file_id,
            record_kind=kind,
            total_records=len(records),
            preview_data=[_preview_row(kind, record) for record in records[: self.preview_limit]],
        )

    def import_upload(self, kind: RecordKind, file_id: str) -> ImportResult:
        """Import every record of a previously staged export."""
        upload = self.staging.get(file_id)
        if upload is None:
            raise KeyError(f"Upload {file_id!r} not found or expired. Please upload the file again.")
        if upload.kind is not kind:
            raise ValueError(f"Upload {file_id!r} was staged as {upload.kind.value}, not {kind.value}.")

        records = self.normalizer.normalize(kind, load_workbook(self.staging.read_bytes(file_id)))
        logger.info(
            "Importing staged upload",
            extra={"upload_id": file_id, "record_kind": kind.value, "record_count": len(records)},
        )
        return self.importer.import_records(kind, records)

    def import_rows(self, kind: RecordKind, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        """Import rows submitted as JSON objects instead of a workbook."""
        if kind is RecordKind.power_samples:
            records: List[Any] = [
                record
                for record in (self._power_sample_from_json(row) for row in rows)
                if record.timestamp is not None and record.timestamp >= self.normalizer.cutoff
            ]
        else:
            records = [self._meter_reading_from_json(row) for row in rows]
        return self.importer.import_records(kind, records)

    def production_stats(self, days: int = DEFAULT_LIMIT_DAYS) -> List[ProductionStat]:
        try:
            samples = self.store.production_samples()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Failed to load production samples", extra={"reason": str(exc)})
            return []
        return [
            ProductionStat(date=stat.date, energy_units=stat.energy_units)
            for stat in self.aggregator.aggregate(samples, limit_days=days)
        ]

    def error_logs(self) -> List[str]:
        return self.importer.error_logs()

    def clear_error_logs(self) -> None:
        self.importer.clear_error_logs()

    def database_status(self) -> DatabaseStatus:
        checked_at = datetime.now()
        try:
            self.store.ping()
        except (SQLAlchemyError, OSError) as exc:
            return DatabaseStatus(
                connected=False,
                message=f"Database Disconnected: {exc}",
                api_status="unavailable",
                last_checked=checked_at,
            )
        return DatabaseStatus(
            connected=True,
            message="Database Connected",
            api_status="ready",
            last_checked=checked_at,
        )

    def latest_records(self) -> LatestRecords:
        try:
            latest_sample, latest_reading = self.store.latest_timestamps()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Failed to read latest record timestamps", extra={"reason": str(exc)})
            return LatestRecords()
        return LatestRecords(power_samples=latest_sample, meter_readings=latest_reading)

    def shutdown(self) -> None:
        self.store.dispose()

    @staticmethod
    def _power_sample_from_json(row: Mapping[str, Any]) -> PowerSampleRecord:
        raw_timestamp = _field_value(row, _POWER_SAMPLE_FIELDS["timestamp"])
        if raw_timestamp is None or not str(raw_timestamp).strip():
            raise ValueError("Missing or empty 'Updated' field in record.")
        values = {
            name: as_double(_json_cell(_field_value(row, spellings)), 0.0)
            for name, spellings in _POWER_SAMPLE_FIELDS.items()
            if name != "timestamp"
        }
        return PowerSampleRecord(timestamp=_parse_json_timestamp(raw_timestamp), **values)

    @staticmethod
    def _meter_reading_from_json(row: Mapping[str, Any]) -> MeterReadingRecord:
        raw_date = _field_value(row, _METER_READING_FIELDS["reading_date"])
        reading_date = None
        if raw_date is not None and str(raw_date).strip():
            reading_date = _parse_json_timestamp(raw_date)

        def cell(name: str) -> Cell:
            return _json_cell(_field_value(row, _METER_READING_FIELDS[name]))

        return MeterReadingRecord(
            reading_date=reading_date,
            reading_value=as_double(cell("reading_value"), 0.0),
            reading_amount=as_double(cell("reading_amount"), 0.0),
            reading_notes=as_string(cell("reading_notes"), ""),
        )


def _field_value(row: Mapping[str, Any], spellings: Sequence[str]) -> Any:
    for spelling in spellings:
        value = row.get(spelling)
        if value is not None:
            return value
    return None


def _json_cell(value: Any) -> Cell:
    if value is None or isinstance(value, bool):
        return EMPTY
    if isinstance(value, (int, float)):
        return NumericCell(float(value))
    return TextCell(str(value).strip())


def _parse_json_timestamp(value: Any) -> datetime:
    try:
        return parse_timestamp_literal(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date format: {value}") from exc


def _preview_row(kind: RecordKind, record: Any) -> Dict[str, Any]:
    preview: Dict[str, Any] = {}
    for name, value in asdict(record).items():
        display_name = _FIELDS_BY_KIND[kind][name][0]
        preview[display_name] = value.isoformat() if isinstance(value, datetime) else value
    return preview


@lru_cache
def build_default_service() -> IngestionService:
    """Factory that wires the service from environment settings."""
    settings = get_settings()
    store = build_default_store()
    importer = BatchImporter(store=store, error_log=ErrorLog(capacity=settings.error_log_capacity))
    return IngestionService(
        staging=build_default_staging(),
        store=store,
        importer=importer,
        preview_limit=settings.preview_limit,
    )
