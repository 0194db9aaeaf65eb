"""
Dimensional Aggregator
======================
Groups scored production records by shift, by equipment segment, or by
calendar window.

Group scores are the arithmetic mean of per-record scores: every record
counts once regardless of its volume. The older dashboards composed group
OEE as mean(A) x mean(P) x mean(Q) instead; that is available as the
"product_of_means" composition for recomputing historical figures.

Combining several shifts into one "general" figure is the one place that
weights by record count.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import pandas as pd

from oee_allocation import resolve_allocations
from oee_levels import classify_level
from oee_metrics import compose_oee, score_from_allocation
from oee_models import ZERO_SCORE, MetricScore
from oee_shared import COMPOSITIONS, DEFAULT_TARGET_OEE, UNKNOWN_SEGMENT
from oee_trend import STRICT, series_stats

METRIC_COLUMNS = ["availability", "performance", "quality", "oee"]

SCORE_COLUMNS = [
    "record_id", "date", "shift_id", "equipment_id", "total_produced",
    "stoppage_minutes", "blocked_quantity",
] + METRIC_COLUMNS


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
def score_records(records, stoppages=(), blocks=(), performance_strategy="auto",
                  quality_strategy="net_of_blocks", allocations=None):
    """Allocate losses and score every record. One DataFrame row per record."""
    records = list(records)
    if allocations is None:
        allocations = resolve_allocations(records, stoppages, blocks)

    rows = []
    for r in records:
        s = score_from_allocation(
            r, allocations,
            performance_strategy=performance_strategy,
            quality_strategy=quality_strategy,
        )
        rows.append({
            "record_id": r.record_id,
            "date": r.date,
            "shift_id": r.shift_id,
            "equipment_id": r.equipment_id,
            "total_produced": r.total_produced,
            "stoppage_minutes": allocations.stoppage_minutes(r.record_id),
            "blocked_quantity": allocations.blocked_quantity(r.record_id),
            **s.as_dict(),
        })
    return pd.DataFrame(rows, columns=SCORE_COLUMNS)


def mean_scores(frame, composition="record_mean"):
    """Average per-record scores of one group."""
    if composition not in COMPOSITIONS:
        raise ValueError(f"Unknown composition: {composition!r}")
    if frame is None or len(frame) == 0:
        return ZERO_SCORE

    a = float(frame["availability"].mean())
    p = float(frame["performance"].mean())
    q = float(frame["quality"].mean())
    if composition == "product_of_means":
        oee = compose_oee(a, p, q)
    else:
        oee = float(frame["oee"].mean())
    return MetricScore(availability=a, performance=p, quality=q, oee=oee)


def weighted_scores(rows):
    """Record-count weighted mean of (MetricScore, record_count) pairs.

    Groups with no records are excluded; no records at all gives zeros.
    """
    rows = [(s, n) for s, n in rows if n > 0]
    total = sum(n for _, n in rows)
    if total == 0:
        return ZERO_SCORE

    def _wmean(attr):
        return math.fsum(getattr(s, attr) * n for s, n in rows) / total

    return MetricScore(**{col: _wmean(col) for col in METRIC_COLUMNS})


def _metrics_dict(metrics):
    out = metrics.rounded(1)
    out["level"] = classify_level(metrics.oee)
    return out


# ---------------------------------------------------------------------------
# By shift
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ShiftSummary:
    shift_id: str
    name: str
    metrics: MetricScore
    record_count: int
    stoppage_minutes: float
    target_oee: float

    @property
    def target_gap(self):
        return self.metrics.oee - self.target_oee

    @property
    def target_progress(self):
        if self.target_oee <= 0:
            return 0.0
        return min(100.0, max(0.0, self.metrics.oee / self.target_oee * 100))

    def to_dict(self):
        return {
            "shift_id": self.shift_id,
            "name": self.name,
            **_metrics_dict(self.metrics),
            "record_count": self.record_count,
            "stoppage_minutes": round(self.stoppage_minutes, 1),
            "target_oee": self.target_oee,
            "target_gap": round(self.target_gap, 1),
            "target_progress": round(self.target_progress, 1),
        }


@dataclass
class ShiftReport:
    shifts: list = field(default_factory=list)
    general: MetricScore = ZERO_SCORE

    def to_dict(self):
        return {
            "by_shift": [s.to_dict() for s in self.shifts],
            "general": _metrics_dict(self.general),
        }


def by_shift(records, stoppages=(), blocks=(), shifts=(), composition="record_mean",
             **strategies):
    """One summary per shift, in the order the shifts are given."""
    stoppages = list(stoppages)
    frame = score_records(records, stoppages, blocks, **strategies)

    minutes_by_shift = {}
    for e in stoppages:
        minutes_by_shift[e.shift_id] = minutes_by_shift.get(e.shift_id, 0.0) + e.duration_minutes

    summaries = []
    for shift in shifts:
        group = frame[frame["shift_id"] == shift.shift_id]
        target = shift.target_oee if shift.target_oee else DEFAULT_TARGET_OEE
        summaries.append(ShiftSummary(
            shift_id=shift.shift_id,
            name=shift.name,
            metrics=mean_scores(group, composition),
            record_count=len(group),
            stoppage_minutes=minutes_by_shift.get(shift.shift_id, 0.0),
            target_oee=target,
        ))

    general = weighted_scores((s.metrics, s.record_count) for s in summaries)
    return ShiftReport(shifts=summaries, general=general)


# ---------------------------------------------------------------------------
# By equipment segment
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SegmentSummary:
    equipment_id: str
    name: str
    metrics: MetricScore
    record_count: int
    total_produced: float

    def to_dict(self):
        return {
            "equipment_id": self.equipment_id,
            "name": self.name,
            **_metrics_dict(self.metrics),
            "record_count": self.record_count,
            "total_produced": int(round(self.total_produced)),
        }


def _segment_names(segments):
    return {s.equipment_id: s.name for s in segments}


def by_equipment(records, stoppages=(), blocks=(), segments=(), composition="record_mean",
                 **strategies):
    """One row per equipment segment with records, best OEE first."""
    frame = score_records(records, stoppages, blocks, **strategies)
    names = _segment_names(segments)

    rows = []
    for equipment_id, group in frame.groupby("equipment_id", sort=True):
        rows.append(SegmentSummary(
            equipment_id=equipment_id,
            name=names.get(equipment_id, UNKNOWN_SEGMENT),
            metrics=mean_scores(group, composition),
            record_count=len(group),
            total_produced=float(group["total_produced"].sum()),
        ))
    rows.sort(key=lambda s: s.metrics.oee, reverse=True)
    return rows


# ---------------------------------------------------------------------------
# By calendar window
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PeriodSummary:
    window: object
    metrics: MetricScore
    record_count: int

    @property
    def label(self):
        return self.window.label

    def to_dict(self):
        return {
            **self.window.to_dict(),
            **_metrics_dict(self.metrics),
            "record_count": self.record_count,
        }


def _kind_stats(periods):
    """Mean/max/min/trend per window kind, oldest window first for the trend."""
    out = {}
    for kind in ("week", "month", "year"):
        values = [p.metrics.oee for p in periods if p.window.kind == kind]
        if values:
            stats = series_stats(list(reversed(values)), STRICT)
            out[kind] = {k: (round(v, 1) if k != "trend" else v) for k, v in stats.items()}
    return out


@dataclass
class SegmentSeries:
    equipment_id: str
    name: str
    periods: list = field(default_factory=list)

    @property
    def mean_oee(self):
        if not self.periods:
            return 0.0
        return sum(p.metrics.oee for p in self.periods) / len(self.periods)

    def to_dict(self):
        return {
            "equipment_id": self.equipment_id,
            "name": self.name,
            "mean_oee": round(self.mean_oee, 1),
            "stats": _kind_stats(self.periods),
            "periods": [p.to_dict() for p in self.periods],
        }


@dataclass
class PeriodReport:
    general: list = field(default_factory=list)
    by_segment: list = field(default_factory=list)

    def to_dict(self):
        return {
            "general": [p.to_dict() for p in self.general],
            "stats": _kind_stats(self.general),
            "by_segment": [s.to_dict() for s in self.by_segment],
        }


def by_period(records, stoppages=(), blocks=(), windows=(), segments=(),
              composition="record_mean", **strategies):
    """Score every window independently.

    Records fall into a window by start <= date <= end. Losses follow the
    records they were allocated to, so overlapping windows (a week inside a
    month) each see a consistent picture and no window double counts.
    """
    frame = score_records(records, stoppages, blocks, **strategies)
    names = _segment_names(segments)
    days = frame["date"]

    general = []
    series = {}
    for window in windows:
        in_window = frame[(days >= window.start) & (days <= window.end)]
        general.append(PeriodSummary(
            window=window,
            metrics=mean_scores(in_window, composition),
            record_count=len(in_window),
        ))
        for equipment_id, group in in_window.groupby("equipment_id", sort=True):
            seg = series.setdefault(equipment_id, SegmentSeries(
                equipment_id=equipment_id,
                name=names.get(equipment_id, UNKNOWN_SEGMENT),
            ))
            seg.periods.append(PeriodSummary(
                window=window,
                metrics=mean_scores(group, composition),
                record_count=len(group),
            ))

    by_segment = sorted(series.values(), key=lambda s: s.mean_oee, reverse=True)
    return PeriodReport(general=general, by_segment=by_segment)
