"""
OEE Metric Formulas
===================
Per-record Availability, Performance, Quality and OEE.

Every formula is total: a non-positive denominator yields the most
conservative value (0) instead of a division error, and every component is
clipped to 0-100 before composition, so OEE never leaves 0-100 either.

Performance and Quality come in named variants. Both historical behaviours
stay available for recomputing old data:

  Performance
    target_output  produced / target            (default for new data)
    cycle_time     ideal cycle / actual cycle, scaled by target attainment
    auto           target_output when a target is populated, else cycle_time
                   when the cycle pair is populated
  Quality
    net_of_blocks  (produced - defects - blocked) / produced   (default)
    defects_only   (produced - defects) / produced
"""

from __future__ import annotations

import math

from oee_models import MetricScore


def _finite(value):
    """Collapse NaN/inf to 0 so nothing non-finite reaches a display."""
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _clip(value, low=0.0, high=100.0):
    return min(high, max(low, _finite(value)))


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------
def availability(planned_minutes, stoppage_minutes=0.0):
    """Share of planned time not lost to stoppages."""
    if not planned_minutes or planned_minutes <= 0:
        return 0.0
    return _clip((planned_minutes - stoppage_minutes) / planned_minutes * 100)


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------
def performance_target_output(total_produced, target_output):
    """Share of the target actually produced. No target means target met."""
    target = target_output or 0.0
    if target > 0:
        return _clip(total_produced / target * 100)
    if total_produced > 0:
        return 100.0
    return 0.0


def performance_cycle_time(total_produced, ideal_cycle_time, actual_cycle_time,
                           target_output=None):
    """Ideal vs actual cycle speed, scaled down when the target was missed."""
    if total_produced <= 0:
        return 0.0
    if not ideal_cycle_time or not actual_cycle_time:
        return 0.0
    if ideal_cycle_time <= 0 or actual_cycle_time <= 0:
        return 0.0
    base = ideal_cycle_time / actual_cycle_time * 100
    attainment = 1.0
    if target_output and target_output > 0:
        attainment = min(1.0, total_produced / target_output)
    return _clip(base * attainment)


def _has_cycle_pair(record):
    return bool(
        record.ideal_cycle_time and record.ideal_cycle_time > 0
        and record.actual_cycle_time and record.actual_cycle_time > 0
    )


def select_performance_strategy(record):
    """Pick the variant the populated inputs support."""
    if record.target_output is not None:
        return "target_output"
    if _has_cycle_pair(record):
        return "cycle_time"
    return "target_output"


def record_performance(record, strategy="auto"):
    if strategy == "auto":
        strategy = select_performance_strategy(record)
    if strategy == "target_output":
        return performance_target_output(record.total_produced, record.target_output)
    if strategy == "cycle_time":
        return performance_cycle_time(
            record.total_produced, record.ideal_cycle_time,
            record.actual_cycle_time, record.target_output,
        )
    raise ValueError(f"Unknown performance strategy: {strategy!r}")


# ---------------------------------------------------------------------------
# Quality
# ---------------------------------------------------------------------------
def quality_net_of_blocks(total_produced, defects, blocked_quantity=0.0):
    """Good units after removing defects and quality holds."""
    if total_produced <= 0:
        return 0.0
    good = max(0.0, total_produced - defects - blocked_quantity)
    return _clip(good / total_produced * 100)


def quality_defects_only(total_produced, defects):
    if total_produced <= 0:
        return 0.0
    good = max(0.0, total_produced - defects)
    return _clip(good / total_produced * 100)


def record_quality(record, blocked_quantity=0.0, strategy="net_of_blocks"):
    if strategy == "net_of_blocks":
        return quality_net_of_blocks(record.total_produced, record.defects, blocked_quantity)
    if strategy == "defects_only":
        return quality_defects_only(record.total_produced, record.defects)
    raise ValueError(f"Unknown quality strategy: {strategy!r}")


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------
def compose_oee(avail, perf, qual):
    """A x P x Q with all three as percentages; result is a percentage."""
    return _finite(avail * perf * qual / 10000)


def score(record, stoppage_minutes=0.0, blocked_quantity=0.0,
          performance_strategy="auto", quality_strategy="net_of_blocks"):
    """Score one ProductionRecord given its allocated losses."""
    a = availability(record.planned_time_minutes, stoppage_minutes)
    p = record_performance(record, performance_strategy)
    q = record_quality(record, blocked_quantity, quality_strategy)
    return MetricScore(availability=a, performance=p, quality=q, oee=compose_oee(a, p, q))


def score_from_allocation(record, allocations, **strategies):
    """Score a record using the losses an AllocationResult attributed to it."""
    return score(
        record,
        allocations.stoppage_minutes(record.record_id),
        allocations.blocked_quantity(record.record_id),
        **strategies,
    )
