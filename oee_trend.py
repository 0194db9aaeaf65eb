"""
Trend Classifier
================
Labels an ordered metric series up / down / stable by comparing the mean of
its later half with the mean of its earlier half (split at floor(n/2)).

Call sites pick a preset:
  STRICT    any positive/negative difference is directional (period dashboards)
  SMOOTHED  needs >2 pts of movement and at least 4 points (shift history)

Series shorter than the preset's minimum are always stable: too little data
is never reported as a trend.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from oee_shared import (
    SMOOTHED_MIN_LENGTH,
    SMOOTHED_THRESHOLD,
    STRICT_THRESHOLD,
    TREND_MIN_LENGTH,
)


@dataclass(frozen=True)
class TrendPreset:
    threshold: float
    min_length: int


STRICT = TrendPreset(threshold=STRICT_THRESHOLD, min_length=TREND_MIN_LENGTH)
SMOOTHED = TrendPreset(threshold=SMOOTHED_THRESHOLD, min_length=SMOOTHED_MIN_LENGTH)


def classify_trend(values, threshold=STRICT_THRESHOLD, min_length=TREND_MIN_LENGTH):
    """Return 'up', 'down' or 'stable' for a date-ordered series."""
    series = np.asarray(list(values), dtype=float)
    n = len(series)
    if n < max(min_length, 2):
        return "stable"

    mid = n // 2
    earlier = float(series[:mid].mean())
    later = float(series[mid:].mean())
    delta = later - earlier
    if not np.isfinite(delta):
        return "stable"
    if delta > threshold:
        return "up"
    if delta < -threshold:
        return "down"
    return "stable"


def classify_with(values, preset):
    return classify_trend(values, threshold=preset.threshold, min_length=preset.min_length)


def series_stats(values, preset=STRICT):
    """Mean / max / min and trend of a series, zeros when it is empty."""
    series = np.asarray(list(values), dtype=float)
    if len(series) == 0:
        return {"mean": 0.0, "max": 0.0, "min": 0.0, "trend": "stable"}
    return {
        "mean": float(series.mean()),
        "max": float(series.max()),
        "min": float(series.min()),
        "trend": classify_with(series, preset),
    }
