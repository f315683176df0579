"""Idempotent batch import of canonical records into the time-series store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from app.schemas import ImportResult
from datastore.error_log import ErrorLog
from datastore.timeseries import TimeSeriesStore
from models.records import MeterReadingRecord, PowerSampleRecord, RecordKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _BatchTarget:
    kind: RecordKind
    label: str
    key_field: str
    key_of: Callable[[Any], Optional[datetime]]
    upsert: Callable[[Connection, Any], int]


class BatchImporter:
    """Upserts records one statement at a time, isolating per-record failures."""

    def __init__(self, store: TimeSeriesStore, error_log: Optional[ErrorLog] = None) -> None:
        self.store = store
        self.error_log = error_log if error_log is not None else ErrorLog()

    def import_records(self, kind: RecordKind, records: Iterable[Any]) -> ImportResult:
        if kind is RecordKind.power_samples:
            return self.import_power_samples(records)
        return self.import_meter_readings(records)

    def import_power_samples(self, records: Iterable[PowerSampleRecord]) -> ImportResult:
        target = _BatchTarget(
            kind=RecordKind.power_samples,
            label="power sample",
            key_field="timestamp",
            key_of=lambda record: record.timestamp,
            upsert=self.store.upsert_power_sample,
        )
        return self._import_batch(target, records)

    def import_meter_readings(self, records: Iterable[MeterReadingRecord]) -> ImportResult:
        target = _BatchTarget(
            kind=RecordKind.meter_readings,
            label="meter reading",
            key_field="reading_date",
            key_of=lambda record: record.reading_date,
            upsert=self.store.upsert_meter_reading,
        )
        return self._import_batch(target, records)

    def _import_batch(self, target: _BatchTarget, records: Iterable[Any]) -> ImportResult:
        result = ImportResult()
        inserted = 0

        try:
            with self.store.connect() as connection:
                for record in records:
                    key = target.key_of(record)
                    if key is None:
                        self._record_error(
                            result, f"Record has null {target.key_field} field, skipping"
                        )
                        continue

                    result.track_date(key)
                    try:
                        if target.upsert(connection, record) > 0:
                            inserted += 1
                    except SQLAlchemyError as exc:
                        self._record_error(
                            result,
                            f"Error importing {target.label} record at {key.isoformat()}: {exc}",
                            record_key=key,
                        )
        except (SQLAlchemyError, OSError) as exc:
            self._record_error(
                result, f"Database connection error during {target.label} import: {exc}"
            )

        result.inserted_count = inserted
        logger.info(
            "Finished batch import",
            extra={
                "record_kind": target.kind.value,
                "inserted_count": result.inserted_count,
                "error_count": result.error_count,
            },
        )
        return result

    def _record_error(
        self, result: ImportResult, message: str, record_key: Optional[datetime] = None
    ) -> None:
        result.add_error(message)
        self.error_log.append(message)
        logger.error(message, extra={"record_key": record_key})

    def error_logs(self) -> list[str]:
        return self.error_log.entries()

    def clear_error_logs(self) -> None:
        self.error_log.clear()
