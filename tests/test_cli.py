import csv
import json
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import cli
from db import SqliteRecordStore


def test_demo_seeds_once(tmp_path, capsys):
    db_path = str(tmp_path / "fitness.db")
    cli.demo_data(db_path)
    cli.demo_data(db_path)
    out = capsys.readouterr().out
    assert "Demo data inserted" in out
    assert "already contains data" in out
    store = SqliteRecordStore(db_path)
    assert len(store.list_exercise_types()) == 3
    assert len(store.list_workouts()) == 1


def test_export_json_and_csv(tmp_path):
    db_path = str(tmp_path / "fitness.db")
    cli.demo_data(db_path)

    json_path = cli.export_workouts(db_path, "json", str(tmp_path))
    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)
    assert data[0]["workout"]["name"] == "Sample session"
    assert [e["name"] for e in data[0]["exercises"]] == ["Bench Press", "Squat"]

    csv_path = cli.export_workouts(db_path, "csv", str(tmp_path))
    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["workout_id", "workout", "date", "exercise", "set", "weight", "reps"]
    assert len(rows) == 4
    assert rows[1][3:] == ["Bench Press", "1", "100.0", "5"]


def test_backup_and_restore(tmp_path):
    db_path = str(tmp_path / "fitness.db")
    backup = str(tmp_path / "backup.db")
    cli.demo_data(db_path)
    cli.backup_db(db_path, backup)
    os.remove(db_path)
    cli.restore_db(backup, db_path)
    assert len(SqliteRecordStore(db_path).list_workouts()) == 1


def test_history_command(tmp_path, capsys):
    db_path = str(tmp_path / "fitness.db")
    cli.main(["demo", "--db", db_path])
    cli.main(["history", "Bench Press", "--db", db_path])
    cli.main(["history", "Deadlift", "--db", db_path])
    out = capsys.readouterr().out
    assert "105 x 3" in out
    assert "No history for Deadlift" in out
