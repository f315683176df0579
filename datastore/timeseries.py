from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError

from datastore.tables import Base, MeterReadingRow, PowerSampleRow
from models.records import MeterReadingRecord, PowerSampleRecord, ProductionSample
from settings import get_settings

_UPSERT_BUILDERS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class TimeSeriesStore:
    """Timestamp-keyed storage for power samples and meter readings."""

    def __init__(self, url: str, engine: Optional[Engine] = None) -> None:
        self.url = url
        self._engine = engine
        self._schema_ready = False
        self._lock = Lock()

    @property
    def engine(self) -> Engine:
        with self._lock:
            if self._engine is None:
                _ensure_sqlite_directory(self.url)
                self._engine = create_engine(self.url, echo=False)
            if not self._schema_ready:
                Base.metadata.create_all(self._engine)
                self._schema_ready = True
            return self._engine

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield a connection on which every statement commits on its own."""
        with self.engine.connect() as connection:
            yield connection.execution_options(isolation_level="AUTOCOMMIT")

    def upsert_power_sample(self, connection: Connection, record: PowerSampleRecord) -> int:
        return self._upsert(connection, PowerSampleRow, "timestamp", asdict(record))

    def upsert_meter_reading(self, connection: Connection, record: MeterReadingRecord) -> int:
        return self._upsert(connection, MeterReadingRow, "reading_date", asdict(record))

    def production_samples(self, since: Optional[datetime] = None) -> list[ProductionSample]:
        """Return (timestamp, production power) pairs in time order."""
        stmt = (
            select(PowerSampleRow.timestamp, PowerSampleRow.production_power)
            .where(PowerSampleRow.timestamp.is_not(None))
            .order_by(PowerSampleRow.timestamp)
        )
        if since is not None:
            stmt = stmt.where(PowerSampleRow.timestamp >= since)
        with self.connect() as connection:
            rows = connection.execute(stmt).all()
        return [
            ProductionSample(timestamp=row.timestamp, production_power=row.production_power)
            for row in rows
        ]

    def get_power_sample(self, timestamp: datetime) -> Optional[PowerSampleRecord]:
        stmt = select(PowerSampleRow.__table__).where(PowerSampleRow.timestamp == timestamp)
        with self.connect() as connection:
            row = connection.execute(stmt).mappings().first()
        return PowerSampleRecord(**row) if row is not None else None

    def get_meter_reading(self, reading_date: datetime) -> Optional[MeterReadingRecord]:
        stmt = select(MeterReadingRow.__table__).where(
            MeterReadingRow.reading_date == reading_date
        )
        with self.connect() as connection:
            row = connection.execute(stmt).mappings().first()
        return MeterReadingRecord(**row) if row is not None else None

    def count_power_samples(self) -> int:
        return self._scalar(select(func.count()).select_from(PowerSampleRow))

    def count_meter_readings(self) -> int:
        return self._scalar(select(func.count()).select_from(MeterReadingRow))

    def latest_timestamps(self) -> tuple[Optional[datetime], Optional[datetime]]:
        """Most recent power sample and meter reading timestamps."""
        with self.connect() as connection:
            latest_sample = connection.execute(select(func.max(PowerSampleRow.timestamp))).scalar()
            latest_reading = connection.execute(
                select(func.max(MeterReadingRow.reading_date))
            ).scalar()
        return latest_sample, latest_reading

    def ping(self) -> None:
        with self.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()

    def _upsert(
        self, connection: Connection, model: type[Base], key: str, values: dict[str, Any]
    ) -> int:
        builder = _UPSERT_BUILDERS.get(connection.dialect.name)
        if builder is None:
            raise ArgumentError(
                f"Upserts are not supported for dialect {connection.dialect.name!r}."
            )
        stmt = builder(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[key],
            set_={name: stmt.excluded[name] for name in values if name != key},
        )
        return connection.execute(stmt).rowcount

    def _scalar(self, stmt) -> int:
        with self.connect() as connection:
            return int(connection.execute(stmt).scalar() or 0)


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if database and database != ":memory:" and not database.startswith("file:"):
        Path(database).parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def build_default_store(url: Optional[str] = None) -> TimeSeriesStore:
    settings = get_settings()
    return TimeSeriesStore(url=settings.database_url if url is None else url)
