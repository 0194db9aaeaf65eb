"""
Shared constants and settings for the OEE Aggregation Engine
=============================================================
Single source of truth for level cutoffs, trend presets, period labels,
stoppage categories and environment-driven settings used across
oee_metrics.py, oee_aggregate.py, oee_periods.py and oee_cli.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Level cutoffs (OEE / Quality tiers, inclusive lower bounds)
# ---------------------------------------------------------------------------
LEVEL_EXCELLENT = 85.0
LEVEL_GOOD = 70.0
LEVEL_WARNING = 50.0

# Shift target used when the store has no value for a shift
DEFAULT_TARGET_OEE = 85.0

# ---------------------------------------------------------------------------
# Trend presets
# ---------------------------------------------------------------------------
TREND_MIN_LENGTH = 2
STRICT_THRESHOLD = 0.0
SMOOTHED_THRESHOLD = 2.0
SMOOTHED_MIN_LENGTH = 4

# ---------------------------------------------------------------------------
# Metric strategies
# ---------------------------------------------------------------------------
PERFORMANCE_STRATEGIES = ("auto", "target_output", "cycle_time")
QUALITY_STRATEGIES = ("net_of_blocks", "defects_only")
COMPOSITIONS = ("record_mean", "product_of_means")

# Data-entry form fallback when an equipment has no hourly capacity
FALLBACK_IDEAL_CYCLE_SECONDS = 2.5

# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
STOPPAGE_CATEGORIES = ("unplanned", "planned", "maintenance", "setup")
BLOCK_DESTINATIONS = ("rework", "scrap", "return", "quarantine")

UNSPECIFIED_REASON = "Not specified"
UNKNOWN_SEGMENT = "Unknown"
PARETO_TOP_N = 8

# ---------------------------------------------------------------------------
# Calendar windows
# ---------------------------------------------------------------------------
WEEK_COUNT = 4
MONTH_COUNT = 12
YEAR_COUNT = 2

PERIOD_UNITS = {
    "week": "Week",
    "month": "Month",
    "year": "Year",
}

# pandas weekly frequencies are anchored on the LAST day of the week
WEEK_ANCHORS = {
    "monday": "W-SUN",
    "tuesday": "W-MON",
    "wednesday": "W-TUE",
    "thursday": "W-WED",
    "friday": "W-THU",
    "saturday": "W-FRI",
    "sunday": "W-SAT",
}

HISTORY_DAYS = 30


def period_label(kind, offset):
    """Stable label for a calendar window: 'Current Week', 'Month -3', ..."""
    unit = PERIOD_UNITS[kind]
    if offset == 0:
        return f"Current {unit}"
    return f"{unit} -{offset}"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    log_level: str = "INFO"
    week_start: str = "sunday"
    performance_strategy: str = "auto"
    quality_strategy: str = "net_of_blocks"
    composition: str = "record_mean"

    @property
    def has_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings(environ=None) -> Settings:
    """Read settings from the environment (or the mapping given)."""
    env = os.environ if environ is None else environ
    settings = Settings(
        supabase_url=env.get("SUPABASE_URL", ""),
        supabase_key=env.get("SUPABASE_KEY", ""),
        log_level=env.get("OEE_LOG_LEVEL", "INFO"),
        week_start=env.get("OEE_WEEK_START", "sunday").strip().lower(),
        performance_strategy=env.get("OEE_PERFORMANCE_STRATEGY", "auto").strip().lower(),
        quality_strategy=env.get("OEE_QUALITY_STRATEGY", "net_of_blocks").strip().lower(),
        composition=env.get("OEE_COMPOSITION", "record_mean").strip().lower(),
    )
    if settings.week_start not in WEEK_ANCHORS:
        raise ValueError(f"OEE_WEEK_START must be a weekday name, got: {settings.week_start!r}")
    if settings.performance_strategy not in PERFORMANCE_STRATEGIES:
        raise ValueError(f"Unknown performance strategy: {settings.performance_strategy!r}")
    if settings.quality_strategy not in QUALITY_STRATEGIES:
        raise ValueError(f"Unknown quality strategy: {settings.quality_strategy!r}")
    if settings.composition not in COMPOSITIONS:
        raise ValueError(f"Unknown composition: {settings.composition!r}")
    return settings
