"""Time-weighted aggregation of power samples into daily energy totals."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from models.records import ProductionSample

DEFAULT_LIMIT_DAYS = 7
_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class DailyProductionStat:
    """Energy attributed to one calendar date."""

    date: date
    energy_units: float


class TimeWeightedAggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Each sample's power is weighted by the time elapsed since the previous
    sample and booked on the calendar date of the later sample. The first
    sample has no predecessor and contributes nothing.
    """

    def aggregate(
        self,
        samples: Iterable[ProductionSample],
        limit_days: int = DEFAULT_LIMIT_DAYS,
    ) -> List[DailyProductionStat]:
        if limit_days <= 0:
            return []

        totals: Dict[date, float] = defaultdict(float)
        previous: Optional[datetime] = None

        for sample in samples:
            if sample.timestamp is None:
                continue
            if previous is not None:
                hours = max(0.0, (sample.timestamp - previous).total_seconds() / _SECONDS_PER_HOUR)
                totals[sample.timestamp.date()] += hours * sample.production_power
            previous = sample.timestamp

        ordered = sorted(totals.items(), key=lambda item: item[0], reverse=True)
        return [
            DailyProductionStat(date=day, energy_units=energy)
            for day, energy in ordered[:limit_days]
        ]
