"""Qualitative tiers for OEE and Quality scores."""

from oee_shared import LEVEL_EXCELLENT, LEVEL_GOOD, LEVEL_WARNING

LEVELS = ("excellent", "good", "warning", "critical")


def classify_level(value):
    """Map a score to excellent/good/warning/critical.

    Values outside 0-100 use the same cutoffs; validation happens upstream.
    """
    if value >= LEVEL_EXCELLENT:
        return "excellent"
    if value >= LEVEL_GOOD:
        return "good"
    if value >= LEVEL_WARNING:
        return "warning"
    return "critical"
