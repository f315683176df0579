"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RecordKind(str, Enum):
    """The two export schemas accepted for ingestion."""

    power_samples = "power-samples"
    meter_readings = "meter-readings"


@dataclass(frozen=True, slots=True)
class PowerSampleRecord:
    """One power-generation snapshot taken from an inverter export row."""

    timestamp: Optional[datetime]
    production_power: float = 0.0
    consume_power: float = 0.0
    grid_power: float = 0.0
    purchase_power: float = 0.0
    feed_in: float = 0.0
    battery_power: float = 0.0
    charge_power: float = 0.0
    discharge_power: float = 0.0
    state_of_charge: float = 0.0


@dataclass(frozen=True, slots=True)
class MeterReadingRecord:
    """One utility billing reading."""

    reading_date: Optional[datetime]
    reading_value: float = 0.0
    reading_amount: float = 0.0
    reading_notes: str = ""


@dataclass(frozen=True, slots=True)
class ProductionSample:
    """Instantaneous production power at a point in time."""

    timestamp: datetime
    production_power: float
