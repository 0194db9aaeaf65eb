"""
Allocation Resolver
===================
Attributes stoppage minutes and blocked-product quantities to individual
production records.

  1. An event linked to a record gives that record its full duration/quantity.
  2. Unlinked events are pooled per (date, shift, equipment) group and split
     evenly over the group's records.
  3. Events whose link or group matches no record are orphaned: reported in
     the result, never attributed, never fatal.

The resolver is a pure map/reduce. Inputs are never mutated and sums use
math.fsum, so re-running it on the same events in any order gives the same
per-record allocation.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allocation:
    record_id: str
    stoppage_minutes: float = 0.0
    blocked_quantity: float = 0.0


@dataclass
class AllocationResult:
    allocations: dict = field(default_factory=dict)
    orphaned_stoppages: list = field(default_factory=list)
    orphaned_blocks: list = field(default_factory=list)

    def get(self, record_id):
        return self.allocations.get(record_id, Allocation(record_id))

    def stoppage_minutes(self, record_id):
        return self.get(record_id).stoppage_minutes

    def blocked_quantity(self, record_id):
        return self.get(record_id).blocked_quantity

    @property
    def orphaned_stoppage_minutes(self):
        return math.fsum(e.duration_minutes for e in self.orphaned_stoppages)

    @property
    def orphaned_blocked_quantity(self):
        return math.fsum(e.quantity for e in self.orphaned_blocks)


def _distribute(records_by_id, records_by_group, events, amount):
    """Return ({record_id: [parts]}, orphans) for one kind of event."""
    parts = defaultdict(list)
    pooled = defaultdict(list)
    orphans = []

    for event in events:
        if event.linked_record_id:
            if event.linked_record_id in records_by_id:
                parts[event.linked_record_id].append(amount(event))
            else:
                orphans.append(event)
            continue
        pooled[event.group_key].append(event)

    for key, group_events in pooled.items():
        members = records_by_group.get(key)
        if not members:
            orphans.extend(group_events)
            continue
        share = math.fsum(amount(e) for e in group_events) / len(members)
        for record_id in members:
            parts[record_id].append(share)

    orphans.sort(key=lambda e: str(e.event_id))
    return parts, orphans


def resolve_allocations(records, stoppages=(), blocks=()):
    """Attribute stoppage minutes and blocked quantities to each record."""
    records_by_id = {r.record_id: r for r in records}
    records_by_group = defaultdict(list)
    for r in records_by_id.values():
        records_by_group[r.group_key].append(r.record_id)

    stop_parts, stop_orphans = _distribute(
        records_by_id, records_by_group, stoppages, lambda e: e.duration_minutes)
    block_parts, block_orphans = _distribute(
        records_by_id, records_by_group, blocks, lambda e: e.quantity)

    allocations = {
        record_id: Allocation(
            record_id=record_id,
            stoppage_minutes=math.fsum(stop_parts.get(record_id, ())),
            blocked_quantity=math.fsum(block_parts.get(record_id, ())),
        )
        for record_id in records_by_id
    }

    result = AllocationResult(
        allocations=allocations,
        orphaned_stoppages=stop_orphans,
        orphaned_blocks=block_orphans,
    )
    if stop_orphans or block_orphans:
        logger.debug(
            "Orphaned events: %d stoppages (%.1f min), %d blocks (%.1f units)",
            len(stop_orphans), result.orphaned_stoppage_minutes,
            len(block_orphans), result.orphaned_blocked_quantity,
        )
    return result
