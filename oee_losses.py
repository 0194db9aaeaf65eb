"""
Loss Analysis
=============
Pareto rankings and day-by-day trends of the two OEE loss sources:
stoppages (availability) and blocked product (quality).
"""

from __future__ import annotations

import pandas as pd

from oee_shared import (
    BLOCK_DESTINATIONS,
    PARETO_TOP_N,
    STOPPAGE_CATEGORIES,
    UNSPECIFIED_REASON,
)

PARETO_COLUMNS = ["reason", "amount", "percent", "cumulative_percent"]


def _reason(text):
    text = (text or "").strip()
    return text or UNSPECIFIED_REASON


def _pareto(pairs, top_n):
    """Rank (reason, amount) pairs, largest first, with cumulative share.

    Percentages are of the grand total, so the top-N rows may sum to less
    than 100 when reasons are cut off.
    """
    df = pd.DataFrame(pairs, columns=["reason", "amount"])
    if df.empty:
        return pd.DataFrame(columns=PARETO_COLUMNS)

    ranked = (
        df.groupby("reason", as_index=False)["amount"].sum()
        .sort_values(["amount", "reason"], ascending=[False, True])
        .reset_index(drop=True)
    )
    total = ranked["amount"].sum()
    if total > 0:
        ranked["percent"] = ranked["amount"] / total * 100
    else:
        ranked["percent"] = 0.0
    ranked["cumulative_percent"] = ranked["percent"].cumsum()
    return ranked.head(top_n)[PARETO_COLUMNS]


def stoppage_pareto(stoppages, top_n=PARETO_TOP_N):
    """Stoppage minutes per reason."""
    return _pareto([(_reason(e.reason), e.duration_minutes) for e in stoppages], top_n)


def blocked_pareto(blocks, top_n=PARETO_TOP_N):
    """Blocked quantity per reason."""
    return _pareto([(_reason(e.reason), e.quantity) for e in blocks], top_n)


def _breakdown(pairs, key, known, amount):
    """Sum and count per key, known keys first (zeros when absent), extras after."""
    df = pd.DataFrame(pairs, columns=[key, amount])
    grouped = df.groupby(key)[amount].agg(["sum", "count"])
    order = list(known) + sorted(set(grouped.index) - set(known))
    rows = []
    for k in order:
        if k in grouped.index:
            rows.append({
                key: k,
                amount: float(grouped.loc[k, "sum"]),
                "events": int(grouped.loc[k, "count"]),
            })
        else:
            rows.append({key: k, amount: 0.0, "events": 0})
    return pd.DataFrame(rows, columns=[key, amount, "events"])


def stoppages_by_category(stoppages):
    """Minutes and event count per stoppage category, known categories first."""
    return _breakdown(
        [(e.category or "unplanned", e.duration_minutes) for e in stoppages],
        "category", STOPPAGE_CATEGORIES, "minutes",
    )


def blocked_by_destination(blocks):
    """Blocked quantity and event count per destination (rework, scrap, ...)."""
    return _breakdown(
        [(e.destination or "quarantine", e.quantity) for e in blocks],
        "destination", BLOCK_DESTINATIONS, "quantity",
    )


def stoppage_trend(stoppages):
    """Total stoppage minutes, event count and hours per date, oldest first."""
    df = pd.DataFrame(
        [(e.date, e.duration_minutes) for e in stoppages],
        columns=["date", "minutes"],
    )
    if df.empty:
        return pd.DataFrame(columns=["date", "minutes", "events", "hours"])
    daily = (
        df.groupby("date", sort=True)["minutes"].agg(["sum", "count"])
        .rename(columns={"sum": "minutes", "count": "events"})
        .reset_index()
    )
    daily["hours"] = (daily["minutes"] / 60).round(2)
    return daily


def quality_trend(records, blocks=()):
    """Pooled quality per production date after removing blocked product.

    quality = max(0, good - blocked) / produced x 100, 0 when nothing was
    produced. Blocks dated on days without production are ignored.
    """
    prod = pd.DataFrame(
        [(r.date, r.total_produced, r.good_units) for r in records],
        columns=["date", "total_produced", "good_units"],
    )
    if prod.empty:
        return pd.DataFrame(columns=["date", "total_produced", "good_units", "blocked", "quality"])

    daily = prod.groupby("date", sort=True)[["total_produced", "good_units"]].sum()
    blocked = pd.Series(
        [b.quantity for b in blocks], index=[b.date for b in blocks], dtype=float,
    ).groupby(level=0).sum()
    daily["blocked"] = blocked.reindex(daily.index).fillna(0.0)

    net = (daily["good_units"] - daily["blocked"]).clip(lower=0)
    produced = daily["total_produced"]
    daily["quality"] = (net / produced.where(produced > 0) * 100).fillna(0.0).clip(upper=100)
    return daily.reset_index()
