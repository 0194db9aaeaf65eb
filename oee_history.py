"""
Daily OEE History
=================
Day-by-day OEE for the history view:

  1. daily_series    plant-wide mean scores per production date
  2. shift_history   the same per shift, with mean OEE, a smoothed trend,
                     and the best / worst shift of the window

Losses are allocated once over the whole window before slicing by date or
shift, so every record carries the same allocation in every view.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

import pandas as pd

from oee_aggregate import METRIC_COLUMNS, mean_scores, score_records
from oee_shared import HISTORY_DAYS
from oee_trend import SMOOTHED, classify_with

DAILY_COLUMNS = ["date"] + METRIC_COLUMNS + ["record_count"]


def history_window(today=None, days=HISTORY_DAYS):
    """Inclusive (start, end) date range covering the last *days* days."""
    today = today or date.today()
    return today - timedelta(days=days), today


def _daily(frame, composition):
    rows = []
    for day, group in frame.groupby("date", sort=True):
        s = mean_scores(group, composition)
        rows.append({"date": day, **s.as_dict(), "record_count": len(group)})
    return pd.DataFrame(rows, columns=DAILY_COLUMNS)


def daily_series(records, stoppages=(), blocks=(), composition="record_mean", **strategies):
    """One row per production date, oldest first."""
    frame = score_records(records, stoppages, blocks, **strategies)
    return _daily(frame, composition)


@dataclass
class ShiftHistory:
    shift_id: str
    name: str
    daily: pd.DataFrame
    mean_oee: float = 0.0
    trend: str = "stable"

    def to_dict(self):
        return {
            "shift_id": self.shift_id,
            "name": self.name,
            "mean_oee": round(self.mean_oee, 1),
            "trend": self.trend,
            "daily": _frame_records(self.daily),
        }


@dataclass
class HistoryReport:
    general: pd.DataFrame
    shifts: list = field(default_factory=list)
    best_shift: ShiftHistory | None = None
    worst_shift: ShiftHistory | None = None

    def to_dict(self):
        def _pick(h):
            return {"name": h.name, "oee": round(h.mean_oee, 1)} if h else None

        return {
            "general": _frame_records(self.general),
            "by_shift": [s.to_dict() for s in self.shifts],
            "best_shift": _pick(self.best_shift),
            "worst_shift": _pick(self.worst_shift),
        }


def _frame_records(frame):
    out = []
    for row in frame.to_dict("records"):
        day = row["date"]
        row["date"] = day.isoformat() if hasattr(day, "isoformat") else str(day)
        for col in METRIC_COLUMNS:
            row[col] = round(float(row[col]), 1)
        row["record_count"] = int(row["record_count"])
        out.append(row)
    return out


def shift_history(records, stoppages=(), blocks=(), shifts=(), composition="record_mean",
                  **strategies):
    """Daily series per shift plus the best and worst shift by mean OEE."""
    frame = score_records(records, stoppages, blocks, **strategies)

    histories = []
    for shift in shifts:
        daily = _daily(frame[frame["shift_id"] == shift.shift_id], composition)
        values = daily["oee"].tolist()
        histories.append(ShiftHistory(
            shift_id=shift.shift_id,
            name=shift.name,
            daily=daily,
            mean_oee=(sum(values) / len(values)) if values else 0.0,
            trend=classify_with(values, SMOOTHED),
        ))

    with_data = [h for h in histories if len(h.daily) > 0]
    best = max(with_data, key=lambda h: h.mean_oee) if with_data else None
    worst = min(with_data, key=lambda h: h.mean_oee) if with_data else None

    return HistoryReport(
        general=_daily(frame, composition),
        shifts=histories,
        best_shift=best,
        worst_shift=worst,
    )
