"""Immutable record, event and score types shared by the engine modules."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date

from oee_shared import DEFAULT_TARGET_OEE, FALLBACK_IDEAL_CYCLE_SECONDS


@dataclass(frozen=True)
class ProductionRecord:
    """One shift's output on one equipment segment on one date."""
    record_id: str
    date: date
    equipment_id: str
    shift_id: str
    planned_time_minutes: float
    actual_time_minutes: float = 0.0
    total_produced: float = 0.0
    defects: float = 0.0
    # None means "not populated" and steers the performance strategy
    target_output: float | None = None
    ideal_cycle_time: float | None = None  # seconds/unit
    actual_cycle_time: float | None = None  # seconds/unit

    @property
    def good_units(self) -> float:
        return max(0.0, self.total_produced - self.defects)

    @property
    def group_key(self) -> tuple:
        return (self.date, self.shift_id, self.equipment_id)


@dataclass(frozen=True)
class StoppageEvent:
    event_id: str
    date: date
    shift_id: str | None
    equipment_id: str | None
    duration_minutes: float
    reason: str = ""
    category: str = "unplanned"
    linked_record_id: str | None = None

    @property
    def group_key(self) -> tuple:
        return (self.date, self.shift_id, self.equipment_id)


@dataclass(frozen=True)
class BlockedProductEvent:
    event_id: str
    date: date
    shift_id: str | None
    equipment_id: str | None
    quantity: float
    reason: str = ""
    destination: str = "quarantine"
    lot_number: str | None = None
    linked_record_id: str | None = None

    @property
    def group_key(self) -> tuple:
        return (self.date, self.shift_id, self.equipment_id)


@dataclass(frozen=True)
class Shift:
    shift_id: str
    name: str
    start_time: str = ""
    end_time: str = ""
    target_oee: float = DEFAULT_TARGET_OEE


@dataclass(frozen=True)
class EquipmentSegment:
    equipment_id: str
    name: str
    code: str | None = None
    target_output_per_hour: float | None = None
    status: str = "active"


@dataclass(frozen=True)
class MetricScore:
    """Availability, Performance, Quality and OEE, all 0-100 percentages."""
    availability: float = 0.0
    performance: float = 0.0
    quality: float = 0.0
    oee: float = 0.0

    def as_dict(self) -> dict:
        return asdict(self)

    def rounded(self, digits: int = 1) -> dict:
        """Display values, rounded the way the dashboard shows them."""
        return {k: round(float(v), digits) for k, v in asdict(self).items()}


ZERO_SCORE = MetricScore()


def ideal_cycle_time_for(capacity_per_hour) -> float:
    """Seconds per unit at the rated hourly capacity."""
    if capacity_per_hour and capacity_per_hour > 0:
        return 3600.0 / capacity_per_hour
    return FALLBACK_IDEAL_CYCLE_SECONDS


def actual_cycle_time_for(actual_minutes, total_produced, ideal_cycle_time) -> float:
    """Observed seconds per unit; falls back to the ideal when nothing was produced."""
    if total_produced and total_produced > 0:
        return actual_minutes * 60.0 / total_produced
    return ideal_cycle_time
