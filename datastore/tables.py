"""SQLAlchemy table models for the time-series store.

Both tables are keyed by their timestamp so that re-importing an export
overwrites rows instead of duplicating them.
"""

import datetime

from sqlalchemy import DateTime, Double, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PowerSampleRow(Base):
    __tablename__ = "power_samples"

    timestamp: Mapped[datetime.datetime] = mapped_column(DateTime, primary_key=True)
    production_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    consume_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    grid_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    purchase_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    feed_in: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    battery_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    charge_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    discharge_power: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    state_of_charge: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)

    def __repr__(self) -> str:
        return (
            f"PowerSampleRow(timestamp={self.timestamp!r}, "
            f"production_power={self.production_power!r})"
        )


class MeterReadingRow(Base):
    __tablename__ = "meter_readings"

    reading_date: Mapped[datetime.datetime] = mapped_column(DateTime, primary_key=True)
    reading_value: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    reading_amount: Mapped[float] = mapped_column(Double, nullable=False, default=0.0)
    reading_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return (
            f"MeterReadingRow(reading_date={self.reading_date!r}, "
            f"reading_value={self.reading_value!r})"
        )
