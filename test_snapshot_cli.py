"""
Unit tests for snapshot loading and the JSON command line.

Run: python -m pytest test_snapshot_cli.py -v
"""

import json
from datetime import date

import pytest

import oee_store
from conftest import make_record, make_stoppage
from oee_aggregate import by_equipment
from oee_cli import main
from oee_models import BlockedProductEvent, StoppageEvent
from oee_snapshot import Snapshot, load_snapshot_file, parse_day, snapshot_from_dict

SNAPSHOT = {
    "production_records": [
        {"record_id": "r1", "date": "2026-10-13", "equipment_id": "e1", "shift_id": "t1",
         "planned_time_minutes": 720, "actual_time_minutes": 660, "total_produced": 95,
         "defects": 5, "target_output": 100},
        {"record_id": "r2", "date": "2026-10-12", "equipment_id": "e2", "shift_id": "t2",
         "planned_time_minutes": "480", "total_produced": 100, "target_output": 100,
         "operator": "ignored"},
    ],
    "stoppages": [
        {"event_id": "s1", "date": "2026-10-13", "equipment_id": "e1", "shift_id": "t1",
         "duration_minutes": 60, "reason": "Jam", "linked_record_id": "r1"},
    ],
    "blocked_products": [
        {"event_id": "b1", "date": "2026-10-12", "equipment_id": "e2", "shift_id": "t2",
         "quantity": 10, "reason": "Seal defect"},
    ],
    "shifts": [
        {"shift_id": "t1", "name": "Morning", "target_oee": 85},
        {"shift_id": "t2", "name": "Afternoon", "target_oee": 80},
    ],
    "segments": [
        {"equipment_id": "e1", "name": "Line 1 - Extrusion"},
        {"equipment_id": "e2", "name": "Line 2 - Packing"},
    ],
}


@pytest.fixture
def snapshot_path(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
    return str(path)


def _run(capsys, *argv):
    main(list(argv))
    return json.loads(capsys.readouterr().out)


# =====================================================================
# Snapshot
# =====================================================================

class TestParseDay:
    def test_iso_string(self):
        assert parse_day("2026-10-14") == date(2026, 10, 14)

    def test_timestamp_string(self):
        assert parse_day("2026-10-14T23:10:00") == date(2026, 10, 14)

    def test_date_passthrough(self):
        assert parse_day(date(2026, 1, 2)) == date(2026, 1, 2)

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_day("yesterday-ish")


class TestSnapshotFromDict:
    def test_coercion(self):
        snap = snapshot_from_dict(SNAPSHOT)
        r2 = snap.records[1]
        assert r2.planned_time_minutes == 480.0
        assert r2.actual_time_minutes == 0.0
        assert r2.defects == 0.0
        assert r2.ideal_cycle_time is None
        assert snap.stoppages[0].linked_record_id == "r1"
        assert snap.shifts[1].target_oee == 80.0

    def test_ids_become_strings(self):
        snap = snapshot_from_dict({"production_records": [
            {"record_id": 5, "date": "2026-10-01", "equipment_id": 1, "shift_id": 2,
             "planned_time_minutes": 60},
        ]})
        assert snap.records[0].record_id == "5"
        assert snap.records[0].equipment_id == "1"

    def test_missing_sections_are_empty(self):
        snap = snapshot_from_dict({})
        assert snap.records == ()
        assert snap.date_span == (None, None)

    def test_bad_date_raises(self):
        with pytest.raises(ValueError):
            snapshot_from_dict({"stoppages": [{"event_id": "s1", "date": "soon",
                                               "duration_minutes": 5}]})

    def test_missing_id_raises(self):
        with pytest.raises(ValueError):
            snapshot_from_dict({"production_records": [{"date": "2026-10-01"}]})

    def test_missing_numbers_default_to_zero(self):
        snap = snapshot_from_dict({
            "production_records": [{"record_id": "r1", "date": "2026-10-01",
                                    "equipment_id": "e1", "shift_id": "t1"}],
            "stoppages": [{"event_id": "s1", "date": "2026-10-01", "shift_id": "t1",
                           "equipment_id": "e1"}],
            "blocked_products": [{"event_id": "b1", "date": "2026-10-01",
                                  "shift_id": "t1", "equipment_id": "e1"}],
            "shifts": [{"shift_id": "t1", "name": "Morning"}],
        })
        assert snap.records[0].planned_time_minutes == 0.0
        assert snap.records[0].total_produced == 0.0
        assert snap.stoppages[0].duration_minutes == 0.0
        assert snap.blocks[0].quantity == 0.0
        assert snap.shifts[0].target_oee == 85.0

    def test_unparsable_number_is_zero(self):
        snap = snapshot_from_dict({"stoppages": [
            {"event_id": "s1", "date": "2026-10-01", "shift_id": "t1", "equipment_id": "e1",
             "duration_minutes": "n/a"},
        ]})
        assert snap.stoppages[0].duration_minutes == 0.0

    def test_between(self):
        snap = snapshot_from_dict(SNAPSHOT)
        assert snap.date_span == (date(2026, 10, 12), date(2026, 10, 13))
        only_13 = snap.between(date(2026, 10, 13), date(2026, 10, 13))
        assert [r.record_id for r in only_13.records] == ["r1"]
        assert only_13.blocks == ()
        assert len(only_13.shifts) == 2
        by_shift = snap.between(shift_id="t2")
        assert [s.shift_id for s in by_shift.shifts] == ["t2"]
        assert [r.record_id for r in snap.between(equipment_id="e2").records] == ["r2"]

    def test_linked_event_follows_its_record(self):
        snap = Snapshot(
            records=(make_record("r1", equipment_id="e1", shift_id="t1"),
                     make_record("r2", equipment_id="e2", shift_id="t1")),
            stoppages=(
                StoppageEvent("s1", date(2026, 10, 14), None, None, 60.0,
                              linked_record_id="r1"),
                StoppageEvent("s2", date(2026, 10, 14), "t1", "e1", 30.0,
                              linked_record_id="r2"),
            ),
            blocks=(BlockedProductEvent("b1", date(2026, 10, 14), None, None, 4.0,
                                        linked_record_id="r1"),),
        )
        e1 = snap.between(equipment_id="e1")
        assert [e.event_id for e in e1.stoppages] == ["s1"]
        assert [b.event_id for b in e1.blocks] == ["b1"]
        assert [e.event_id for e in snap.between(shift_id="t1").stoppages] == ["s1", "s2"]

        row = by_equipment(e1.records, e1.stoppages, e1.blocks)[0]
        assert abs(row.metrics.availability - 91.67) < 0.01

    def test_dangling_link_filtered_on_own_fields(self):
        snap = Snapshot(
            records=(make_record("r1", equipment_id="e1"),),
            stoppages=(make_stoppage("s1", equipment_id="e1", linked="gone"),
                       make_stoppage("s2", equipment_id="e2", linked="gone")),
        )
        assert [e.event_id for e in snap.between(equipment_id="e1").stoppages] == ["s1"]

    def test_load_file(self, snapshot_path):
        snap = load_snapshot_file(snapshot_path)
        assert len(snap.records) == 2
        assert len(snap.segments) == 2


# =====================================================================
# CLI
# =====================================================================

class TestCli:
    def test_shifts(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "shifts")
        morning, afternoon = out["by_shift"]
        assert morning["name"] == "Morning"
        assert morning["oee"] == 82.5
        assert morning["stoppage_minutes"] == 60.0
        assert afternoon["quality"] == 90.0
        assert afternoon["oee"] == 90.0
        assert abs(out["general"]["oee"] - 86.25) < 0.06

    def test_segments(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "segments")
        assert [s["name"] for s in out["segments"]] == ["Line 2 - Packing", "Line 1 - Extrusion"]

    def test_equipment_filter(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "segments",
                   "--equipment", "e1")
        assert [s["equipment_id"] for s in out["segments"]] == ["e1"]

    def test_periods(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "periods",
                   "--today", "2026-10-14")
        assert len(out["general"]) == 18
        current = out["general"][0]
        assert current["label"] == "Current Week"
        assert current["record_count"] == 2
        assert len(out["by_segment"]) == 2

    def test_history(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "history",
                   "--today", "2026-10-14")
        assert [d["date"] for d in out["general"]] == ["2026-10-12", "2026-10-13"]
        assert out["best_shift"]["name"] == "Afternoon"

    def test_history_window_excludes_old_records(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "history",
                   "--today", "2026-12-31")
        assert out["general"] == []
        assert out["best_shift"] is None

    def test_pareto(self, capsys, snapshot_path):
        out = _run(capsys, "--snapshot", snapshot_path, "--command", "pareto")
        assert out["stoppages"] == [{"reason": "Jam", "amount": 60.0, "percent": 100.0,
                                     "cumulative_percent": 100.0}]
        assert out["blocked_products"][0]["reason"] == "Seal defect"
        rework = {d["destination"]: d for d in out["blocked_destinations"]}["rework"]
        assert rework == {"destination": "rework", "quantity": 0.0, "events": 0}
        assert out["blocked_destinations"][-1]["destination"] == "quarantine"
        assert out["blocked_destinations"][-1]["quantity"] == 10.0
        assert out["stoppage_trend"][0]["date"] == "2026-10-13"
        assert [q["date"] for q in out["quality_trend"]] == ["2026-10-12", "2026-10-13"]

    def test_supabase_without_configuration(self, capsys, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        oee_store.set_client(None)
        out = _run(capsys, "--supabase", "--command", "shifts")
        assert out == {"by_shift": [], "general": {
            "availability": 0.0, "performance": 0.0, "quality": 0.0, "oee": 0.0,
            "level": "critical"}}

    def test_source_required(self):
        with pytest.raises(SystemExit):
            main(["--command", "shifts"])

    MIXED = {
        "production_records": [
            {"record_id": "r1", "date": "2026-10-13", "equipment_id": "e1", "shift_id": "t1",
             "planned_time_minutes": 720, "total_produced": 100, "target_output": 100},
            {"record_id": "r2", "date": "2026-10-13", "equipment_id": "e1", "shift_id": "t1",
             "planned_time_minutes": 720, "total_produced": 100, "defects": 50,
             "target_output": 100},
        ],
        "stoppages": [
            {"event_id": "s1", "date": "2026-10-13", "equipment_id": "e1", "shift_id": "t1",
             "duration_minutes": 360, "linked_record_id": "r1"},
        ],
        "shifts": [{"shift_id": "t1", "name": "Morning"}],
    }

    def test_composition_from_environment(self, capsys, tmp_path, monkeypatch):
        path = tmp_path / "mixed.json"
        path.write_text(json.dumps(self.MIXED), encoding="utf-8")
        out = _run(capsys, "--snapshot", str(path), "--command", "shifts")
        assert out["by_shift"][0]["oee"] == 50.0

        monkeypatch.setenv("OEE_COMPOSITION", "product_of_means")
        out = _run(capsys, "--snapshot", str(path), "--command", "shifts")
        assert abs(out["by_shift"][0]["oee"] - 56.25) < 0.06  # 75 x 100 x 75

    def test_composition_flag_overrides_environment(self, capsys, tmp_path, monkeypatch):
        path = tmp_path / "mixed.json"
        path.write_text(json.dumps(self.MIXED), encoding="utf-8")
        monkeypatch.setenv("OEE_COMPOSITION", "product_of_means")
        out = _run(capsys, "--snapshot", str(path), "--command", "segments",
                   "--composition", "record_mean")
        assert out["segments"][0]["oee"] == 50.0
