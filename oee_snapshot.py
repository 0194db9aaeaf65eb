"""
Record snapshots
================
A Snapshot bundles the five collections one computation pass needs. It can
be filled from the Supabase store or from a JSON file with the shape:

  {
    "production_records": [{"record_id": "r1", "date": "2026-10-01", ...}],
    "stoppages":          [{"event_id": "s1", "duration_minutes": 30, ...}],
    "blocked_products":   [{"event_id": "b1", "quantity": 4, ...}],
    "shifts":             [{"shift_id": "t1", "name": "Morning", ...}],
    "segments":           [{"equipment_id": "e1", "name": "Line 1", ...}]
  }

Field names match the engine's dataclasses. Missing or unparsable numeric
fields are coerced to 0 (a shift without a target keeps the 85 default); a
row without a parsable date or without its id is an error.
"""

from __future__ import annotations

import json
import logging
from dataclasses import MISSING, dataclass, fields
from datetime import date, datetime

import pandas as pd

import oee_store
from oee_models import (
    BlockedProductEvent,
    EquipmentSegment,
    ProductionRecord,
    Shift,
    StoppageEvent,
)

logger = logging.getLogger(__name__)

_NUMERIC = {
    "planned_time_minutes", "actual_time_minutes", "total_produced", "defects",
    "duration_minutes", "quantity", "target_oee",
}
_OPTIONAL_NUMERIC = {
    "target_output", "ideal_cycle_time", "actual_cycle_time", "target_output_per_hour",
}
_IDS = {"record_id", "event_id", "shift_id", "equipment_id", "linked_record_id"}


@dataclass(frozen=True)
class Snapshot:
    records: tuple = ()
    stoppages: tuple = ()
    blocks: tuple = ()
    shifts: tuple = ()
    segments: tuple = ()

    def between(self, start=None, end=None, equipment_id=None, shift_id=None):
        """Inclusive date range plus optional equipment/shift filter.

        An event linked to a record in the snapshot follows that record,
        whatever its own date, equipment or shift says. Reference entities
        (shifts, segments) are kept whole, except that a shift filter narrows
        the shift list too.
        """
        def keep(item):
            if start is not None and item.date < start:
                return False
            if end is not None and item.date > end:
                return False
            if equipment_id and item.equipment_id != equipment_id:
                return False
            if shift_id and item.shift_id != shift_id:
                return False
            return True

        records = tuple(r for r in self.records if keep(r))
        kept_ids = {r.record_id for r in records}
        known_ids = {r.record_id for r in self.records}

        def keep_event(event):
            if event.linked_record_id in known_ids:
                return event.linked_record_id in kept_ids
            return keep(event)

        shifts = self.shifts
        if shift_id:
            shifts = tuple(s for s in shifts if s.shift_id == shift_id)
        return Snapshot(
            records=records,
            stoppages=tuple(e for e in self.stoppages if keep_event(e)),
            blocks=tuple(e for e in self.blocks if keep_event(e)),
            shifts=shifts,
            segments=self.segments,
        )

    @property
    def date_span(self):
        """(first, last) production date, or (None, None) when empty."""
        if not self.records:
            return None, None
        days = [r.date for r in self.records]
        return min(days), max(days)


def parse_day(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        raise ValueError(f"Unparsable date: {value!r}")
    return ts.date()


def _to_float(value, default):
    if value is None:
        return default
    num = pd.to_numeric(value, errors="coerce")
    return default if pd.isna(num) else float(num)


def _build(cls, row):
    """Instantiate a dataclass from a dict, ignoring unknown keys."""
    kwargs = {}
    for f in fields(cls):
        if f.name not in row:
            if f.name in _NUMERIC and f.default is MISSING:
                kwargs[f.name] = 0.0
            continue
        value = row[f.name]
        if f.name == "date":
            value = parse_day(value)
        elif f.name in _NUMERIC:
            value = _to_float(value, 0.0)
        elif f.name in _OPTIONAL_NUMERIC:
            value = _to_float(value, None)
        elif f.name in _IDS and value is not None:
            value = str(value)
        kwargs[f.name] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ValueError(f"Invalid {cls.__name__} row {row!r}: {exc}") from exc


def snapshot_from_dict(data):
    def _rows(key, cls):
        return tuple(_build(cls, row) for row in data.get(key, []) or [])

    return Snapshot(
        records=_rows("production_records", ProductionRecord),
        stoppages=_rows("stoppages", StoppageEvent),
        blocks=_rows("blocked_products", BlockedProductEvent),
        shifts=_rows("shifts", Shift),
        segments=_rows("segments", EquipmentSegment),
    )


def load_snapshot_file(path):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    snap = snapshot_from_dict(data)
    logger.info(
        "Snapshot %s: %d records, %d stoppages, %d blocks, %d shifts, %d segments",
        path, len(snap.records), len(snap.stoppages), len(snap.blocks),
        len(snap.shifts), len(snap.segments),
    )
    return snap


def load_snapshot_from_store(start=None, end=None, equipment_id=None, shift_id=None):
    """Fetch one snapshot from Supabase. Empty when no store is configured."""
    if not oee_store.is_connected():
        logger.warning("No Supabase store configured; snapshot is empty")
    return Snapshot(
        records=tuple(oee_store.fetch_production_records(start, end, equipment_id, shift_id)),
        stoppages=tuple(oee_store.fetch_stoppages(start, end, equipment_id, shift_id)),
        blocks=tuple(oee_store.fetch_blocked_products(start, end, equipment_id, shift_id)),
        shifts=tuple(oee_store.fetch_shifts()),
        segments=tuple(oee_store.fetch_segments()),
    )
