import logging
from datetime import date

import pytest

from oee_models import (
    BlockedProductEvent,
    EquipmentSegment,
    ProductionRecord,
    Shift,
    StoppageEvent,
)

DAY = date(2026, 10, 14)


def make_record(record_id="r1", day=DAY, equipment_id="e1", shift_id="t1", **kw):
    """Production record with a 720 min shift, 100 target, 95 produced, 5 defects."""
    values = {
        "planned_time_minutes": 720.0,
        "actual_time_minutes": 660.0,
        "total_produced": 95.0,
        "defects": 5.0,
        "target_output": 100.0,
    }
    values.update(kw)
    return ProductionRecord(record_id=record_id, date=day, equipment_id=equipment_id,
                            shift_id=shift_id, **values)


def make_stoppage(event_id="s1", minutes=60.0, day=DAY, equipment_id="e1", shift_id="t1",
                  linked=None, reason="Jam", category="unplanned"):
    return StoppageEvent(event_id=event_id, date=day, shift_id=shift_id,
                         equipment_id=equipment_id, duration_minutes=minutes,
                         reason=reason, category=category, linked_record_id=linked)


def make_block(event_id="b1", quantity=5.0, day=DAY, equipment_id="e1", shift_id="t1",
               linked=None, reason="Seal defect"):
    return BlockedProductEvent(event_id=event_id, date=day, shift_id=shift_id,
                               equipment_id=equipment_id, quantity=quantity,
                               reason=reason, destination="rework", linked_record_id=linked)


@pytest.fixture
def shifts():
    return [
        Shift("t1", "Morning", "06:00", "14:00", target_oee=85.0),
        Shift("t2", "Afternoon", "14:00", "22:00", target_oee=80.0),
        Shift("t3", "Night", "22:00", "06:00", target_oee=75.0),
    ]


@pytest.fixture
def segments():
    return [
        EquipmentSegment("e1", "Line 1 - Extrusion", "EXT-001", 120.0),
        EquipmentSegment("e2", "Line 2 - Packing", "EMP-001", 200.0),
    ]


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """The CLI reconfigures the root logger; put pytest's handlers back."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
