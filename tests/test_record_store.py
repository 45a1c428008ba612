import datetime
import os
import sqlite3
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import SqliteRecordStore
from models import (
    ExerciseCreate,
    ExerciseTypeCreate,
    ExerciseTypeUpdate,
    ExerciseUpdate,
    GoalCreate,
    GoalUpdate,
    RoutineExerciseCreate,
    RoutineWithExercisesInput,
    WorkoutCreate,
    WorkoutRoutineCreate,
    WorkoutUpdate,
    WorkoutWithExercisesInput,
    WorkoutWithExercisesUpdate,
)
from record_store import MemoryRecordStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryRecordStore()
    return SqliteRecordStore(str(tmp_path / "fitness.db"))


def _workout(store, name="Push day", date="2024-01-01"):
    return store.create_workout(WorkoutCreate(name=name, date=date))


def test_ids_are_monotonic_and_never_reused(store):
    first = _workout(store)
    second = _workout(store)
    assert second.id > first.id
    assert store.delete_workout(second.id)
    third = _workout(store)
    assert third.id > second.id


def test_workout_defaults_date_to_now(store):
    before = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    workout = store.create_workout(WorkoutCreate(name="Today"))
    assert workout.date >= before - datetime.timedelta(seconds=1)
    assert store.get_workout(workout.id) == workout


def test_workouts_listed_newest_first(store):
    _workout(store, "old", "2024-01-01")
    _workout(store, "new", "2024-03-01")
    _workout(store, "middle", "2024-02-01")
    assert [w.name for w in store.list_workouts()] == ["new", "middle", "old"]


def test_missing_ids_return_not_found(store):
    assert store.get_workout(99) is None
    assert store.update_workout(99, WorkoutUpdate(name="x")) is None
    assert store.delete_workout(99) is False
    assert store.get_goal(99) is None
    assert store.update_goal(99, GoalUpdate(name="x")) is None
    assert store.delete_exercise_type(99) is False


def test_delete_workout_cascades_to_exercises(store):
    workout = _workout(store)
    other = _workout(store, "Pull day")
    ex = store.create_exercise(
        ExerciseCreate(workout_id=workout.id, name="Bench Press", sets=[{"weight": 60, "reps": 10}])
    )
    kept = store.create_exercise(ExerciseCreate(workout_id=other.id, name="Row"))
    assert store.delete_workout(workout.id) is True
    assert store.get_workout(workout.id) is None
    assert store.list_exercises(workout.id) == []
    assert store.get_exercise(ex.id) is None
    assert store.get_exercise(kept.id) is not None
    assert store.delete_workout(workout.id) is False


def test_empty_update_leaves_workout_unchanged(store):
    workout = store.create_workout(
        WorkoutCreate(name="Legs", date="2024-01-01", duration_minutes=50, notes="heavy")
    )
    assert store.update_workout(workout.id, WorkoutUpdate()) == workout
    assert store.update_workout(workout.id, WorkoutUpdate(name="")).name == "Legs"
    assert store.get_workout(workout.id) == workout


def test_partial_update_replaces_only_given_fields(store):
    workout = store.create_workout(
        WorkoutCreate(name="Legs", date="2024-01-01", duration_minutes=50, notes="heavy")
    )
    updated = store.update_workout(workout.id, WorkoutUpdate(notes=None, duration_minutes=40))
    assert updated.name == "Legs"
    assert updated.duration_minutes == 40
    assert updated.notes is None
    assert updated.date == workout.date


def test_exercise_sets_keep_their_order(store):
    workout = _workout(store)
    sets = [{"weight": 100, "reps": 5}, {"weight": 90, "reps": 8}, {"weight": 110, "reps": 2}]
    ex = store.create_exercise(ExerciseCreate(workout_id=workout.id, name="Squat", sets=sets))
    fetched = store.get_exercise(ex.id)
    assert [(s.weight, s.reps) for s in fetched.sets] == [(100, 5), (90, 8), (110, 2)]
    updated = store.update_exercise(ex.id, ExerciseUpdate(sets=[{"weight": 120, "reps": 1}]))
    assert updated.name == "Squat"
    assert [(s.weight, s.reps) for s in updated.sets] == [(120, 1)]


def test_exercise_requires_existing_workout(store):
    with pytest.raises(ValueError):
        store.create_exercise(ExerciseCreate(workout_id=42, name="Squat"))
    workout = _workout(store)
    ex = store.create_exercise(ExerciseCreate(workout_id=workout.id, name="Squat"))
    with pytest.raises(ValueError):
        store.update_exercise(ex.id, ExerciseUpdate(workout_id=42))


def test_goal_defaults(store):
    goal = store.create_goal(GoalCreate(name="Big bench", exercise_name="Bench Press"))
    assert goal.is_completed is False
    assert goal.current_progress is None
    done = store.update_goal(goal.id, GoalUpdate(is_completed=True, current_progress=80))
    assert done.is_completed is True
    assert done.current_progress == 80
    assert done.exercise_name == "Bench Press"
    assert [g.id for g in store.list_goals()] == [goal.id]


def test_exercise_type_names_are_unique(store):
    bench = store.create_exercise_type(ExerciseTypeCreate(name="Bench Press", category="Chest"))
    squat = store.create_exercise_type(ExerciseTypeCreate(name="Squat"))
    with pytest.raises(ValueError):
        store.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    with pytest.raises(ValueError):
        store.update_exercise_type(squat.id, ExerciseTypeUpdate(name="Bench Press"))
    assert store.get_exercise_type_by_name("Bench Press") == bench
    assert store.get_exercise_type_by_name("bench press") is None


def test_rename_propagates_to_exact_matches_only(store):
    bench = store.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    workout = _workout(store)
    flat = store.create_exercise(ExerciseCreate(workout_id=workout.id, name="Bench Press"))
    incline = store.create_exercise(
        ExerciseCreate(workout_id=workout.id, name="Incline Bench Press")
    )
    goal = store.create_goal(GoalCreate(name="Bench 100", exercise_name="Bench Press"))
    other_goal = store.create_goal(GoalCreate(name="Squat 140", exercise_name="Squat"))

    renamed = store.update_exercise_type(
        bench.id, ExerciseTypeUpdate(name="Barbell Bench Press")
    )

    assert renamed.name == "Barbell Bench Press"
    assert store.get_exercise(flat.id).name == "Barbell Bench Press"
    assert store.get_exercise(incline.id).name == "Incline Bench Press"
    assert store.get_goal(goal.id).exercise_name == "Barbell Bench Press"
    assert store.get_goal(other_goal.id).exercise_name == "Squat"
    assert store.list_exercises_by_name("Bench Press") == []


def test_routine_exercises_ordered_and_cascaded(store):
    bench = store.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    routine = store.create_workout_routine(WorkoutRoutineCreate(name="Push"))
    second = store.create_routine_exercise(
        RoutineExerciseCreate(routine_id=routine.id, exercise_type_id=bench.id, order_index=2)
    )
    first = store.create_routine_exercise(
        RoutineExerciseCreate(
            routine_id=routine.id, exercise_type_id=bench.id, order_index=1, default_reps=8
        )
    )
    assert second.default_sets == 3
    assert [r.id for r in store.list_routine_exercises(routine.id)] == [first.id, second.id]
    assert store.delete_workout_routine(routine.id) is True
    assert store.list_routine_exercises(routine.id) == []
    assert store.get_routine_exercise(first.id) is None


def test_routine_exercise_requires_existing_routine(store):
    with pytest.raises(ValueError):
        store.create_routine_exercise(
            RoutineExerciseCreate(routine_id=5, exercise_type_id=1, order_index=0)
        )


def test_workout_with_exercises_round_trip(store):
    created = store.create_workout_with_exercises(
        WorkoutWithExercisesInput.model_validate(
            {
                "workout": {"name": "Upper", "date": "2024-01-08"},
                "exercises": [
                    {"name": "Bench Press", "sets": [{"weight": 100, "reps": 5}]},
                    {"name": "Row", "sets": []},
                ],
            }
        )
    )
    assert [e.name for e in created.exercises] == ["Bench Press", "Row"]
    assert all(e.workout_id == created.workout.id for e in created.exercises)
    assert store.get_workout_with_exercises(created.workout.id) == created
    assert store.get_workout_with_exercises(999) is None


def test_replace_workout_with_exercises_keeps_name(store):
    created = store.create_workout_with_exercises(
        WorkoutWithExercisesInput.model_validate(
            {"workout": {"name": "Upper"}, "exercises": [{"name": "Bench Press"}]}
        )
    )
    replaced = store.replace_workout_with_exercises(
        created.workout.id,
        WorkoutWithExercisesUpdate.model_validate(
            {"workout": {"name": "", "notes": "swapped"}, "exercises": [{"name": "Dips"}]}
        ),
    )
    assert replaced.workout.name == "Upper"
    assert replaced.workout.notes == "swapped"
    assert [e.name for e in store.list_exercises(created.workout.id)] == ["Dips"]
    assert store.get_exercise(created.exercises[0].id) is None
    assert (
        store.replace_workout_with_exercises(
            999, WorkoutWithExercisesUpdate.model_validate({"workout": {}})
        )
        is None
    )


def test_recent_workouts_limit(store):
    for day in range(1, 8):
        _workout(store, f"Day {day}", f"2024-01-0{day}")
    recent = store.recent_workouts(3)
    assert [item.workout.name for item in recent] == ["Day 7", "Day 6", "Day 5"]
    assert store.recent_workouts(0) == []


def test_routine_with_exercises_and_conversion(store):
    bench = store.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    dips = store.create_exercise_type(ExerciseTypeCreate(name="Dips"))
    created = store.create_routine_with_exercises(
        RoutineWithExercisesInput.model_validate(
            {
                "routine": {"name": "Push", "category": "Strength"},
                "exercises": [
                    {"exerciseTypeId": dips.id, "orderIndex": 1, "defaultSets": 2},
                    {"exerciseTypeId": bench.id, "orderIndex": 0, "defaultReps": 5},
                ],
            }
        )
    )
    assert [e.exercise_name for e in created.exercises] == ["Bench Press", "Dips"]
    assert store.get_routine_with_exercises(created.routine.id) == created

    workout = store.convert_routine_to_workout(created.routine.id, date="2024-02-01")
    assert workout.workout.name == "Push"
    assert workout.workout.date == datetime.datetime(2024, 2, 1)
    assert [e.name for e in workout.exercises] == ["Bench Press", "Dips"]
    assert [(s.weight, s.reps) for s in workout.exercises[0].sets] == [(0, 5)] * 3
    assert [(s.weight, s.reps) for s in workout.exercises[1].sets] == [(0, 0)] * 2

    store.delete_exercise_type(dips.id)
    detail = store.get_routine_with_exercises(created.routine.id)
    assert [e.exercise_name for e in detail.exercises] == ["Bench Press", ""]
    second = store.convert_routine_to_workout(created.routine.id, name="Quick push")
    assert second.workout.name == "Quick push"
    assert [e.name for e in second.exercises] == ["Bench Press"]
    assert store.convert_routine_to_workout(999) is None


def test_replace_routine_with_exercises(store):
    bench = store.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    created = store.create_routine_with_exercises(
        RoutineWithExercisesInput.model_validate(
            {"routine": {"name": "Push"}, "exercises": [{"exerciseTypeId": bench.id, "orderIndex": 0}]}
        )
    )
    replaced = store.replace_routine_with_exercises(
        created.routine.id,
        RoutineWithExercisesInput.model_validate(
            {
                "routine": {"name": "Push v2"},
                "exercises": [
                    {"exerciseTypeId": bench.id, "orderIndex": 0, "defaultSets": 5},
                    {"exerciseTypeId": bench.id, "orderIndex": 1, "defaultSets": 1},
                ],
            }
        ),
    )
    assert replaced.routine.name == "Push v2"
    assert [e.default_sets for e in replaced.exercises] == [5, 1]
    assert store.get_routine_exercise(created.exercises[0].id) is None


def test_sqlite_store_persists_between_instances(tmp_path):
    path = str(tmp_path / "fitness.db")
    first = SqliteRecordStore(path)
    workout = first.create_workout(WorkoutCreate(name="Legs", date="2024-01-01T18:30:00Z"))
    first.create_exercise(
        ExerciseCreate(workout_id=workout.id, name="Squat", sets=[{"weight": 140, "reps": 3}])
    )
    second = SqliteRecordStore(path)
    assert second.get_workout(workout.id).date == datetime.datetime(2024, 1, 1, 18, 30)
    assert second.list_exercises(workout.id)[0].sets[0].weight == 140


def _fail(*args, **kwargs):
    raise sqlite3.OperationalError("disk I/O error")


def test_sqlite_combined_create_rolls_back(tmp_path, monkeypatch):
    store = SqliteRecordStore(str(tmp_path / "fitness.db"))
    monkeypatch.setattr(store.exercises, "add", _fail)
    with pytest.raises(sqlite3.OperationalError):
        store.create_workout_with_exercises(
            WorkoutWithExercisesInput.model_validate(
                {"workout": {"name": "Upper"}, "exercises": [{"name": "Bench Press"}]}
            )
        )
    assert store.list_workouts() == []


def test_sqlite_combined_replace_rolls_back(tmp_path, monkeypatch):
    store = SqliteRecordStore(str(tmp_path / "fitness.db"))
    created = store.create_workout_with_exercises(
        WorkoutWithExercisesInput.model_validate(
            {"workout": {"name": "Upper"}, "exercises": [{"name": "Bench Press"}]}
        )
    )
    monkeypatch.setattr(store.exercises, "add", _fail)
    with pytest.raises(sqlite3.OperationalError):
        store.replace_workout_with_exercises(
            created.workout.id,
            WorkoutWithExercisesUpdate.model_validate(
                {"workout": {"name": "Lower"}, "exercises": [{"name": "Squat"}]}
            ),
        )
    assert store.get_workout_with_exercises(created.workout.id) == created


def test_sqlite_routine_create_rolls_back(tmp_path, monkeypatch):
    store = SqliteRecordStore(str(tmp_path / "fitness.db"))
    monkeypatch.setattr(store.routine_exercises, "add", _fail)
    with pytest.raises(sqlite3.OperationalError):
        store.create_routine_with_exercises(
            RoutineWithExercisesInput.model_validate(
                {"routine": {"name": "Push"}, "exercises": [{"exerciseTypeId": 1, "orderIndex": 0}]}
            )
        )
    assert store.list_workout_routines() == []


def test_sqlite_rename_rolls_back_with_fix_up(tmp_path, monkeypatch):
    store = SqliteRecordStore(str(tmp_path / "fitness.db"))
    bench = store.create_exercise_type(ExerciseTypeCreate(name="Bench Press"))
    workout = _workout(store)
    ex = store.create_exercise(ExerciseCreate(workout_id=workout.id, name="Bench Press"))
    monkeypatch.setattr(store.goals, "rename_exercise", _fail)
    with pytest.raises(sqlite3.OperationalError):
        store.update_exercise_type(bench.id, ExerciseTypeUpdate(name="Barbell Bench Press"))
    assert store.get_exercise_type(bench.id).name == "Bench Press"
    assert store.get_exercise(ex.id).name == "Bench Press"


def test_sqlite_unreadable_row_is_a_database_error(tmp_path):
    path = str(tmp_path / "fitness.db")
    store = SqliteRecordStore(path)
    workout = _workout(store)
    ex = store.create_exercise(ExerciseCreate(workout_id=workout.id, name="Squat"))
    conn = sqlite3.connect(path)
    conn.execute("UPDATE exercises SET sets = 'not json' WHERE id = ?", (ex.id,))
    conn.commit()
    conn.close()
    with pytest.raises(sqlite3.DatabaseError) as excinfo:
        store.get_exercise(ex.id)
    assert not isinstance(excinfo.value, ValueError)
