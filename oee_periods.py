"""
Period Calendar Builder
=======================
Rolling calendar windows for the period dashboard:

  4 weeks   Current Week, Week -1 .. Week -3
  12 months Current Month, Month -1 .. Month -11
  2 years   Current Year, Year -1

Boundaries come from pandas Periods, so month and year edges are
calendar-exact and weeks start on the configured weekday. Labels are stable
join keys between the general series and the per-segment series.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import pandas as pd

from oee_shared import MONTH_COUNT, WEEK_ANCHORS, WEEK_COUNT, YEAR_COUNT, period_label


@dataclass(frozen=True)
class PeriodWindow:
    kind: str
    label: str
    start: date
    end: date

    def contains(self, day):
        return self.start <= day <= self.end

    def to_dict(self):
        return {
            "kind": self.kind,
            "label": self.label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


def _windows(kind, freq, today, count):
    current = pd.Period(pd.Timestamp(today), freq=freq)
    out = []
    for offset in range(count):
        period = current - offset
        out.append(PeriodWindow(
            kind=kind,
            label=period_label(kind, offset),
            start=period.start_time.date(),
            end=period.end_time.date(),
        ))
    return out


def weekly_windows(today, count=WEEK_COUNT, week_start="sunday"):
    anchor = WEEK_ANCHORS.get(str(week_start).lower())
    if anchor is None:
        raise ValueError(f"Unknown week start: {week_start!r}")
    return _windows("week", anchor, today, count)


def monthly_windows(today, count=MONTH_COUNT):
    return _windows("month", "M", today, count)


def yearly_windows(today, count=YEAR_COUNT):
    return _windows("year", "Y", today, count)


def build_windows(today=None, week_start="sunday"):
    """All dashboard windows, weeks then months then years, newest first."""
    today = today or date.today()
    return (
        weekly_windows(today, week_start=week_start)
        + monthly_windows(today)
        + yearly_windows(today)
    )
