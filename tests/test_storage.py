import logging
import os
import sqlite3
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import SqliteRecordStore
from models import (
    ExerciseCreate,
    ExerciseTypeCreate,
    GoalCreate,
    RoutineWithExercisesInput,
    WorkoutCreate,
)
from record_store import MemoryRecordStore
from storage import FallbackStorage, StorageMode, create_storage


class FlakyStore(MemoryRecordStore):
    """Durable stand-in whose operations raise once ``down`` is set."""

    storage_type = "SQLite"

    def __init__(self) -> None:
        super().__init__()
        self.down = False
        self.calls = 0

    def _check(self) -> None:
        self.calls += 1
        if self.down:
            raise sqlite3.OperationalError("unable to open database file")

    def list_workouts(self):
        self._check()
        return super().list_workouts()

    def create_workout(self, data):
        self._check()
        return super().create_workout(data)

    def create_exercise(self, data):
        self._check()
        return super().create_exercise(data)

    def list_goals(self):
        self._check()
        return super().list_goals()

    def create_goal(self, data):
        self._check()
        return super().create_goal(data)


def test_starts_in_durable_mode():
    durable = FlakyStore()
    storage = FallbackStorage(durable)
    storage.create_workout(WorkoutCreate(name="Legs"))
    assert storage.mode is StorageMode.DURABLE
    assert len(durable.list_workouts()) == 1
    status = storage.storage_status()
    assert status["storageType"] == "SQLite"
    assert status["isUsingDurable"] is True
    assert status["warning"] is None


def test_failure_switches_to_memory_and_retries_call(caplog):
    durable = FlakyStore()
    storage = FallbackStorage(durable)
    storage.create_workout(WorkoutCreate(name="Before"))
    durable.down = True

    with caplog.at_level(logging.ERROR, logger="storage"):
        created = storage.create_workout(WorkoutCreate(name="After"))

    assert storage.mode is StorageMode.FALLBACK
    assert created.id == 1
    assert [w.name for w in storage.memory.list_workouts()] == ["After"]
    assert any(r.levelno == logging.ERROR for r in caplog.records)
    assert isinstance(storage.last_error, sqlite3.OperationalError)


def test_fallback_is_permanent_across_entity_types():
    durable = FlakyStore()
    storage = FallbackStorage(durable)
    durable.down = True
    assert storage.list_workouts() == []
    durable.down = False
    calls = durable.calls

    storage.create_goal(GoalCreate(name="Bench 100"))
    storage.list_goals()
    storage.create_workout(WorkoutCreate(name="Legs"))

    assert durable.calls == calls
    assert durable.list_goals() == []
    assert [g.name for g in storage.list_goals()] == ["Bench 100"]
    status = storage.storage_status()
    assert status["storageType"] == "Memory"
    assert status["isUsingDurable"] is False
    assert status["warning"]


def test_records_written_before_fallback_are_not_visible():
    durable = FlakyStore()
    storage = FallbackStorage(durable)
    storage.create_workout(WorkoutCreate(name="Persisted"))
    durable.down = True
    assert storage.list_workouts() == []


def test_validation_errors_do_not_trigger_fallback():
    storage = FallbackStorage(FlakyStore())
    with pytest.raises(ValueError):
        storage.create_exercise(ExerciseCreate(workout_id=7, name="Squat"))
    assert storage.mode is StorageMode.DURABLE


def test_composed_operations_follow_the_active_store():
    durable = FlakyStore()
    storage = FallbackStorage(durable)
    durable.down = True
    assert storage.recent_workouts(5) == []
    assert storage.get_workout_with_exercises(1) is None
    assert storage.mode is StorageMode.FALLBACK


def test_create_storage_sqlite(tmp_path):
    storage = create_storage("sqlite", str(tmp_path / "fitness.db"))
    assert storage.mode is StorageMode.DURABLE
    assert storage.storage_type == "SQLite"
    assert storage.create_workout(WorkoutCreate(name="Legs")).id == 1


def test_create_storage_memory():
    storage = create_storage("memory")
    assert storage.mode is StorageMode.FALLBACK
    assert storage.storage_type == "Memory"


def test_create_storage_unopenable_database(tmp_path):
    def broken(path):
        raise sqlite3.OperationalError("unable to open database file")

    storage = create_storage("sqlite", str(tmp_path / "fitness.db"), durable_factory=broken)
    assert storage.mode is StorageMode.FALLBACK
    assert storage.create_workout(WorkoutCreate(name="Legs")).id == 1
    assert storage.storage_status()["isUsingDurable"] is False


class LockedReadStore(SqliteRecordStore):
    """SQLite store whose standalone routine reads fail."""

    def list_routine_exercises(self, routine_id):
        raise sqlite3.OperationalError("database is locked")


def test_routine_create_reads_back_inside_its_transaction(tmp_path):
    durable = LockedReadStore(str(tmp_path / "fitness.db"))
    bench = durable.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    storage = FallbackStorage(durable)
    payload = RoutineWithExercisesInput.model_validate(
        {"routine": {"name": "Push"}, "exercises": [{"exerciseTypeId": bench.id, "orderIndex": 0}]}
    )

    created = storage.create_routine_with_exercises(payload)
    replaced = storage.replace_routine_with_exercises(created.routine.id, payload)

    assert storage.mode is StorageMode.DURABLE
    assert [e.exercise_name for e in created.exercises] == ["Bench Press"]
    assert replaced is not None
    assert [r.name for r in durable.list_workout_routines()] == ["Push"]
    assert storage.memory.list_workout_routines() == []


def test_unreadable_stored_row_triggers_fallback(tmp_path):
    path = str(tmp_path / "fitness.db")
    durable = SqliteRecordStore(path)
    workout = durable.create_workout(WorkoutCreate(name="Legs"))
    durable.create_exercise(ExerciseCreate(workout_id=workout.id, name="Squat"))
    conn = sqlite3.connect(path)
    conn.execute("UPDATE exercises SET sets = '{broken'")
    conn.commit()
    conn.close()

    storage = FallbackStorage(durable)
    assert storage.list_exercises(workout.id) == []
    assert storage.mode is StorageMode.FALLBACK
