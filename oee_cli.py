"""CLI for the OEE Aggregation Engine: snapshot in, presentation-ready JSON out."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date

from logging_conf import configure_logging
from oee_aggregate import by_equipment, by_period, by_shift
from oee_history import history_window, shift_history
from oee_losses import (
    blocked_by_destination,
    blocked_pareto,
    quality_trend,
    stoppage_pareto,
    stoppage_trend,
    stoppages_by_category,
)
from oee_periods import build_windows
from oee_shared import COMPOSITIONS, HISTORY_DAYS, PARETO_TOP_N, load_settings
from oee_snapshot import load_snapshot_file, load_snapshot_from_store, parse_day

logger = logging.getLogger("oee_cli")

COMMANDS = ["shifts", "segments", "periods", "history", "pareto"]


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="OEE aggregation engine")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--snapshot", help="JSON snapshot file")
    source.add_argument("--supabase", action="store_true",
                        help="Fetch records from the configured Supabase store")
    p.add_argument("--command", required=True, choices=COMMANDS, help="Summary to compute")
    p.add_argument("--start", type=parse_day, help="First date (inclusive)")
    p.add_argument("--end", type=parse_day, help="Last date (inclusive)")
    p.add_argument("--today", type=parse_day, help="Reference date for periods/history")
    p.add_argument("--equipment", help="Restrict to one equipment segment")
    p.add_argument("--shift", help="Restrict to one shift")
    p.add_argument("--days", type=int, default=HISTORY_DAYS, help="History length in days")
    p.add_argument("--top", type=int, default=PARETO_TOP_N, help="Pareto rows")
    p.add_argument("--composition", choices=COMPOSITIONS,
                   help="Group OEE composition, overrides OEE_COMPOSITION")
    p.add_argument("--log-level", help="Overrides OEE_LOG_LEVEL")
    return p


def _frame(df):
    out = df.to_dict("records")
    for row in out:
        for k, v in row.items():
            if isinstance(v, float):
                row[k] = round(v, 1)
            elif isinstance(v, date):
                row[k] = v.isoformat()
    return out


def _date_range(args, today):
    """Explicit --start/--end win; periods and history derive their own span."""
    if args.command == "periods" and args.start is None and args.end is None:
        windows = build_windows(today)
        return min(w.start for w in windows), max(w.end for w in windows)
    if args.command == "history" and args.start is None and args.end is None:
        return history_window(today, args.days)
    return args.start, args.end


def run(args, settings=None):
    """Compute the requested summary and return it as a JSON-ready dict."""
    settings = settings or load_settings()
    today = args.today or date.today()
    start, end = _date_range(args, today)

    if args.snapshot:
        snap = load_snapshot_file(args.snapshot).between(start, end, args.equipment, args.shift)
    else:
        snap = load_snapshot_from_store(start, end, args.equipment, args.shift)

    options = {
        "performance_strategy": settings.performance_strategy,
        "quality_strategy": settings.quality_strategy,
        "composition": getattr(args, "composition", None) or settings.composition,
    }
    logger.info("Computing %s over %d records", args.command, len(snap.records))

    if args.command == "shifts":
        return by_shift(snap.records, snap.stoppages, snap.blocks, snap.shifts,
                        **options).to_dict()
    if args.command == "segments":
        rows = by_equipment(snap.records, snap.stoppages, snap.blocks, snap.segments,
                            **options)
        return {"segments": [r.to_dict() for r in rows]}
    if args.command == "periods":
        windows = build_windows(today, week_start=settings.week_start)
        return by_period(snap.records, snap.stoppages, snap.blocks, windows, snap.segments,
                         **options).to_dict()
    if args.command == "history":
        return shift_history(snap.records, snap.stoppages, snap.blocks, snap.shifts,
                             **options).to_dict()
    if args.command == "pareto":
        return {
            "stoppages": _frame(stoppage_pareto(snap.stoppages, args.top)),
            "blocked_products": _frame(blocked_pareto(snap.blocks, args.top)),
            "blocked_destinations": _frame(blocked_by_destination(snap.blocks)),
            "stoppage_categories": _frame(stoppages_by_category(snap.stoppages)),
            "stoppage_trend": _frame(stoppage_trend(snap.stoppages)),
            "quality_trend": _frame(quality_trend(snap.records, snap.blocks)),
        }
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> None:
    args = _build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(args.log_level or settings.log_level)
    result = run(args, settings)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
