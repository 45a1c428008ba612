import datetime
import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import List, Optional, Tuple

from models import (
    Exercise,
    ExerciseCreate,
    ExerciseType,
    ExerciseTypeCreate,
    ExerciseTypeUpdate,
    ExerciseUpdate,
    Goal,
    GoalCreate,
    GoalUpdate,
    RoutineExercise,
    RoutineExerciseCreate,
    RoutineExerciseDetail,
    RoutineExerciseUpdate,
    RoutineWithExercises,
    RoutineWithExercisesInput,
    Workout,
    WorkoutCreate,
    WorkoutRoutine,
    WorkoutRoutineCreate,
    WorkoutRoutineUpdate,
    WorkoutUpdate,
    WorkoutWithExercises,
    WorkoutWithExercisesInput,
    WorkoutWithExercisesUpdate,
    changes_of,
    utcnow,
)
from record_store import UNNAMED_WORKOUT, RecordStore, merge, workout_changes

logger = logging.getLogger(__name__)


def _ts(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat(timespec="microseconds") if value is not None else None


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "exercise_types": (
            """CREATE TABLE exercise_types (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT,
                    notes TEXT,
                    category TEXT,
                    created_at TEXT NOT NULL
                );""",
            ["id", "name", "description", "notes", "category", "created_at"],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    date TEXT NOT NULL,
                    duration_minutes INTEGER,
                    notes TEXT
                );""",
            ["id", "name", "date", "duration_minutes", "notes"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    sets TEXT NOT NULL DEFAULT '[]',
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
            ["id", "workout_id", "name", "sets"],
        ),
        "goals": (
            """CREATE TABLE goals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    exercise_name TEXT,
                    target_weight REAL,
                    target_reps INTEGER,
                    target_date TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    current_progress REAL
                );""",
            [
                "id",
                "name",
                "exercise_name",
                "target_weight",
                "target_reps",
                "target_date",
                "is_completed",
                "current_progress",
            ],
        ),
        "workout_routines": (
            """CREATE TABLE workout_routines (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    category TEXT,
                    created_at TEXT NOT NULL
                );""",
            ["id", "name", "description", "category", "created_at"],
        ),
        "routine_exercises": (
            """CREATE TABLE routine_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    routine_id INTEGER NOT NULL,
                    exercise_type_id INTEGER NOT NULL,
                    order_index INTEGER NOT NULL,
                    default_sets INTEGER NOT NULL DEFAULT 3,
                    default_reps INTEGER,
                    notes TEXT,
                    FOREIGN KEY(routine_id) REFERENCES workout_routines(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "routine_id",
                "exercise_type_id",
                "order_index",
                "default_sets",
                "default_reps",
                "notes",
            ],
        ),
    }

    def __init__(self, db_path: str = "fitness.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            conn.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "sets":
                        return "'[]'"
                    if col in ("is_completed", "order_index"):
                        return "0"
                    if col == "default_sets":
                        return "3"
                    if col in ("created_at", "date"):
                        return f"'{_ts(utcnow())}'"
                    if col == "name":
                        return "''"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods.

    Every helper accepts an open connection so several repositories can
    share one transaction.
    """

    table = ""

    @property
    def columns(self) -> List[str]:
        return self._TABLE_DEFINITIONS[self.table][1]

    def execute(self, query: str, params: Tuple = (), conn=None) -> int:
        if conn is not None:
            return conn.execute(query, params).lastrowid
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def execute_count(self, query: str, params: Tuple = (), conn=None) -> int:
        if conn is not None:
            return conn.execute(query, params).rowcount
        with self._connection() as conn:
            return conn.execute(query, params).rowcount

    def fetch_all(self, query: str, params: Tuple = (), conn=None) -> List[Tuple]:
        if conn is not None:
            return conn.execute(query, params).fetchall()
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _select(self, where: str = "", params: Tuple = (), order: str = "id", conn=None):
        query = f"SELECT {', '.join(self.columns)} FROM {self.table}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {order};"
        models = []
        for row in self.fetch_all(query, params, conn):
            try:
                models.append(self._to_model(row))
            except ValueError as e:
                # a row that fails to decode is a storage fault
                raise sqlite3.DatabaseError(
                    f"unreadable row {row[0]} in {self.table}: {e}"
                ) from e
        return models

    def _to_model(self, row: Tuple):
        raise NotImplementedError

    def fetch(self, row_id: int, conn=None):
        rows = self._select("id = ?", (row_id,), conn=conn)
        return rows[0] if rows else None

    def fetch_every(self, conn=None) -> list:
        return self._select(conn=conn)

    def delete(self, row_id: int, conn=None) -> bool:
        return self.execute_count(
            f"DELETE FROM {self.table} WHERE id = ?;", (row_id,), conn
        ) > 0

    def _write(self, row, values: Tuple, conn=None) -> None:
        assignments = ", ".join(f"{c} = ?" for c in self.columns[1:])
        self.execute(
            f"UPDATE {self.table} SET {assignments} WHERE id = ?;",
            (*values, row.id),
            conn,
        )


class ExerciseTypeRepository(BaseRepository):
    """Repository for exercise type operations."""

    table = "exercise_types"

    def _to_model(self, row: Tuple) -> ExerciseType:
        return ExerciseType.model_validate(dict(zip(self.columns, row)))

    def add(self, data: ExerciseTypeCreate, conn=None) -> int:
        try:
            return self.execute(
                "INSERT INTO exercise_types (name, description, notes, category, created_at) VALUES (?, ?, ?, ?, ?);",
                (data.name, data.description, data.notes, data.category, _ts(utcnow())),
                conn,
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"exercise type '{data.name}' already exists") from e

    def fetch_by_name(self, name: str, conn=None) -> Optional[ExerciseType]:
        rows = self._select("name = ?", (name,), conn=conn)
        return rows[0] if rows else None

    def save(self, row: ExerciseType, conn=None) -> None:
        try:
            self._write(
                row,
                (row.name, row.description, row.notes, row.category, _ts(row.created_at)),
                conn,
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"exercise type '{row.name}' already exists") from e


class WorkoutRepository(BaseRepository):
    """Repository for workout table operations."""

    table = "workouts"

    def _to_model(self, row: Tuple) -> Workout:
        return Workout.model_validate(dict(zip(self.columns, row)))

    def create(self, data: WorkoutCreate, conn=None) -> int:
        return self.execute(
            "INSERT INTO workouts (name, date, duration_minutes, notes) VALUES (?, ?, ?, ?);",
            (data.name, _ts(data.date or utcnow()), data.duration_minutes, data.notes),
            conn,
        )

    def fetch_all_workouts(self, conn=None) -> List[Workout]:
        return self._select(order="date DESC, id ASC", conn=conn)

    def save(self, row: Workout, conn=None) -> None:
        self._write(row, (row.name, _ts(row.date), row.duration_minutes, row.notes), conn)


class ExerciseRepository(BaseRepository):
    """Repository for exercise table operations."""

    table = "exercises"

    def _to_model(self, row: Tuple) -> Exercise:
        data = dict(zip(self.columns, row))
        data["sets"] = json.loads(data["sets"] or "[]")
        return Exercise.model_validate(data)

    @staticmethod
    def _encode_sets(sets) -> str:
        return json.dumps([s.model_dump() for s in sets])

    def add(self, workout_id: int, name: str, sets, conn=None) -> int:
        return self.execute(
            "INSERT INTO exercises (workout_id, name, sets) VALUES (?, ?, ?);",
            (workout_id, name, self._encode_sets(sets)),
            conn,
        )

    def fetch_for_workout(self, workout_id: int, conn=None) -> List[Exercise]:
        return self._select("workout_id = ?", (workout_id,), conn=conn)

    def fetch_by_name(self, name: str, conn=None) -> List[Exercise]:
        return self._select("name = ?", (name,), conn=conn)

    def remove_for_workout(self, workout_id: int, conn=None) -> None:
        self.execute("DELETE FROM exercises WHERE workout_id = ?;", (workout_id,), conn)

    def rename(self, old_name: str, new_name: str, conn=None) -> int:
        return self.execute_count(
            "UPDATE exercises SET name = ? WHERE name = ?;", (new_name, old_name), conn
        )

    def save(self, row: Exercise, conn=None) -> None:
        self._write(row, (row.workout_id, row.name, self._encode_sets(row.sets)), conn)


class GoalRepository(BaseRepository):
    """Repository for goals."""

    table = "goals"

    def _to_model(self, row: Tuple) -> Goal:
        return Goal.model_validate(dict(zip(self.columns, row)))

    def add(self, data: GoalCreate, conn=None) -> int:
        return self.execute(
            "INSERT INTO goals (name, exercise_name, target_weight, target_reps, target_date, is_completed, current_progress) VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                data.name,
                data.exercise_name,
                data.target_weight,
                data.target_reps,
                _ts(data.target_date),
                int(data.is_completed),
                data.current_progress,
            ),
            conn,
        )

    def rename_exercise(self, old_name: str, new_name: str, conn=None) -> int:
        return self.execute_count(
            "UPDATE goals SET exercise_name = ? WHERE exercise_name = ?;",
            (new_name, old_name),
            conn,
        )

    def save(self, row: Goal, conn=None) -> None:
        self._write(
            row,
            (
                row.name,
                row.exercise_name,
                row.target_weight,
                row.target_reps,
                _ts(row.target_date),
                int(row.is_completed),
                row.current_progress,
            ),
            conn,
        )


class WorkoutRoutineRepository(BaseRepository):
    """Repository for workout routine templates."""

    table = "workout_routines"

    def _to_model(self, row: Tuple) -> WorkoutRoutine:
        return WorkoutRoutine.model_validate(dict(zip(self.columns, row)))

    def create(self, data: WorkoutRoutineCreate, conn=None) -> int:
        return self.execute(
            "INSERT INTO workout_routines (name, description, category, created_at) VALUES (?, ?, ?, ?);",
            (data.name, data.description, data.category, _ts(utcnow())),
            conn,
        )

    def save(self, row: WorkoutRoutine, conn=None) -> None:
        self._write(
            row, (row.name, row.description, row.category, _ts(row.created_at)), conn
        )


class RoutineExerciseRepository(BaseRepository):
    """Repository for the exercises of a routine template."""

    table = "routine_exercises"

    def _to_model(self, row: Tuple) -> RoutineExercise:
        return RoutineExercise.model_validate(dict(zip(self.columns, row)))

    def add(self, data: RoutineExerciseCreate, conn=None) -> int:
        return self.execute(
            "INSERT INTO routine_exercises (routine_id, exercise_type_id, order_index, default_sets, default_reps, notes) VALUES (?, ?, ?, ?, ?, ?);",
            (
                data.routine_id,
                data.exercise_type_id,
                data.order_index,
                data.default_sets,
                data.default_reps,
                data.notes,
            ),
            conn,
        )

    def fetch_for_routine(self, routine_id: int, conn=None) -> List[RoutineExercise]:
        return self._select(
            "routine_id = ?", (routine_id,), order="order_index ASC, id ASC", conn=conn
        )

    def remove_for_routine(self, routine_id: int, conn=None) -> None:
        self.execute(
            "DELETE FROM routine_exercises WHERE routine_id = ?;", (routine_id,), conn
        )

    def save(self, row: RoutineExercise, conn=None) -> None:
        self._write(
            row,
            (
                row.routine_id,
                row.exercise_type_id,
                row.order_index,
                row.default_sets,
                row.default_reps,
                row.notes,
            ),
            conn,
        )


class SqliteRecordStore(RecordStore):
    """Durable record store backed by a SQLite database file."""

    storage_type = "SQLite"

    def __init__(self, db_path: str = "fitness.db") -> None:
        self.db_path = db_path
        self.exercise_types = ExerciseTypeRepository(db_path)
        self.workouts = WorkoutRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.goals = GoalRepository(db_path)
        self.routines = WorkoutRoutineRepository(db_path)
        self.routine_exercises = RoutineExerciseRepository(db_path)

    def transaction(self):
        """Open one connection shared by every repository call inside it."""
        return self.workouts._connection()

    # Workouts

    def list_workouts(self) -> List[Workout]:
        return self.workouts.fetch_all_workouts()

    def get_workout(self, workout_id: int) -> Optional[Workout]:
        return self.workouts.fetch(workout_id)

    def create_workout(self, data: WorkoutCreate) -> Workout:
        with self.transaction() as conn:
            return self.workouts.fetch(self.workouts.create(data, conn), conn)

    def update_workout(self, workout_id: int, data: WorkoutUpdate) -> Optional[Workout]:
        with self.transaction() as conn:
            existing = self.workouts.fetch(workout_id, conn)
            if existing is None:
                return None
            updated = merge(existing, workout_changes(data))
            self.workouts.save(updated, conn)
            return updated

    def delete_workout(self, workout_id: int) -> bool:
        with self.transaction() as conn:
            self.exercises.remove_for_workout(workout_id, conn)
            return self.workouts.delete(workout_id, conn)

    # Exercises

    def list_exercises(self, workout_id: int) -> List[Exercise]:
        return self.exercises.fetch_for_workout(workout_id)

    def list_exercises_by_name(self, name: str) -> List[Exercise]:
        return self.exercises.fetch_by_name(name)

    def get_exercise(self, exercise_id: int) -> Optional[Exercise]:
        return self.exercises.fetch(exercise_id)

    def _require_workout(self, workout_id: int, conn) -> None:
        if self.workouts.fetch(workout_id, conn) is None:
            raise ValueError(f"workout {workout_id} not found")

    def create_exercise(self, data: ExerciseCreate) -> Exercise:
        with self.transaction() as conn:
            self._require_workout(data.workout_id, conn)
            ex_id = self.exercises.add(data.workout_id, data.name, data.sets, conn)
            return self.exercises.fetch(ex_id, conn)

    def update_exercise(self, exercise_id: int, data: ExerciseUpdate) -> Optional[Exercise]:
        with self.transaction() as conn:
            existing = self.exercises.fetch(exercise_id, conn)
            if existing is None:
                return None
            updated = merge(existing, changes_of(data))
            if updated.workout_id != existing.workout_id:
                self._require_workout(updated.workout_id, conn)
            self.exercises.save(updated, conn)
            return updated

    def delete_exercise(self, exercise_id: int) -> bool:
        return self.exercises.delete(exercise_id)

    # Exercise types

    def list_exercise_types(self) -> List[ExerciseType]:
        return self.exercise_types.fetch_every()

    def get_exercise_type(self, type_id: int) -> Optional[ExerciseType]:
        return self.exercise_types.fetch(type_id)

    def get_exercise_type_by_name(self, name: str) -> Optional[ExerciseType]:
        return self.exercise_types.fetch_by_name(name)

    def create_exercise_type(self, data: ExerciseTypeCreate) -> ExerciseType:
        with self.transaction() as conn:
            if self.exercise_types.fetch_by_name(data.name, conn) is not None:
                raise ValueError(f"exercise type '{data.name}' already exists")
            return self.exercise_types.fetch(self.exercise_types.add(data, conn), conn)

    def update_exercise_type(
        self, type_id: int, data: ExerciseTypeUpdate
    ) -> Optional[ExerciseType]:
        with self.transaction() as conn:
            existing = self.exercise_types.fetch(type_id, conn)
            if existing is None:
                return None
            updated = merge(existing, changes_of(data))
            if updated.name != existing.name:
                other = self.exercise_types.fetch_by_name(updated.name, conn)
                if other is not None and other.id != type_id:
                    raise ValueError(f"exercise type '{updated.name}' already exists")
            self.exercise_types.save(updated, conn)
            if updated.name != existing.name:
                renamed = self.exercises.rename(existing.name, updated.name, conn)
                renamed += self.goals.rename_exercise(existing.name, updated.name, conn)
                logger.info(
                    "renamed %d records from '%s' to '%s'",
                    renamed,
                    existing.name,
                    updated.name,
                )
            return updated

    def delete_exercise_type(self, type_id: int) -> bool:
        return self.exercise_types.delete(type_id)

    # Goals

    def list_goals(self) -> List[Goal]:
        return self.goals.fetch_every()

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        return self.goals.fetch(goal_id)

    def create_goal(self, data: GoalCreate) -> Goal:
        with self.transaction() as conn:
            return self.goals.fetch(self.goals.add(data, conn), conn)

    def update_goal(self, goal_id: int, data: GoalUpdate) -> Optional[Goal]:
        with self.transaction() as conn:
            existing = self.goals.fetch(goal_id, conn)
            if existing is None:
                return None
            updated = merge(existing, changes_of(data))
            self.goals.save(updated, conn)
            return updated

    def delete_goal(self, goal_id: int) -> bool:
        return self.goals.delete(goal_id)

    # Routines

    def list_workout_routines(self) -> List[WorkoutRoutine]:
        return self.routines.fetch_every()

    def get_workout_routine(self, routine_id: int) -> Optional[WorkoutRoutine]:
        return self.routines.fetch(routine_id)

    def create_workout_routine(self, data: WorkoutRoutineCreate) -> WorkoutRoutine:
        with self.transaction() as conn:
            return self.routines.fetch(self.routines.create(data, conn), conn)

    def update_workout_routine(
        self, routine_id: int, data: WorkoutRoutineUpdate
    ) -> Optional[WorkoutRoutine]:
        with self.transaction() as conn:
            existing = self.routines.fetch(routine_id, conn)
            if existing is None:
                return None
            updated = merge(existing, changes_of(data))
            self.routines.save(updated, conn)
            return updated

    def delete_workout_routine(self, routine_id: int) -> bool:
        with self.transaction() as conn:
            self.routine_exercises.remove_for_routine(routine_id, conn)
            return self.routines.delete(routine_id, conn)

    def list_routine_exercises(self, routine_id: int) -> List[RoutineExercise]:
        return self.routine_exercises.fetch_for_routine(routine_id)

    def get_routine_exercise(self, item_id: int) -> Optional[RoutineExercise]:
        return self.routine_exercises.fetch(item_id)

    def _require_routine(self, routine_id: int, conn) -> None:
        if self.routines.fetch(routine_id, conn) is None:
            raise ValueError(f"workout routine {routine_id} not found")

    def create_routine_exercise(self, data: RoutineExerciseCreate) -> RoutineExercise:
        with self.transaction() as conn:
            self._require_routine(data.routine_id, conn)
            return self.routine_exercises.fetch(self.routine_exercises.add(data, conn), conn)

    def update_routine_exercise(
        self, item_id: int, data: RoutineExerciseUpdate
    ) -> Optional[RoutineExercise]:
        with self.transaction() as conn:
            existing = self.routine_exercises.fetch(item_id, conn)
            if existing is None:
                return None
            updated = merge(existing, changes_of(data))
            if updated.routine_id != existing.routine_id:
                self._require_routine(updated.routine_id, conn)
            self.routine_exercises.save(updated, conn)
            return updated

    def delete_routine_exercise(self, item_id: int) -> bool:
        return self.routine_exercises.delete(item_id)

    # Combined operations

    def create_workout_with_exercises(
        self, data: WorkoutWithExercisesInput
    ) -> WorkoutWithExercises:
        with self.transaction() as conn:
            workout_id = self.workouts.create(data.workout, conn)
            for ex in data.exercises:
                self.exercises.add(workout_id, ex.name, ex.sets, conn)
            return WorkoutWithExercises(
                workout=self.workouts.fetch(workout_id, conn),
                exercises=self.exercises.fetch_for_workout(workout_id, conn),
            )

    def replace_workout_with_exercises(
        self, workout_id: int, data: WorkoutWithExercisesUpdate
    ) -> Optional[WorkoutWithExercises]:
        with self.transaction() as conn:
            existing = self.workouts.fetch(workout_id, conn)
            if existing is None:
                return None
            changes = workout_changes(data.workout)
            changes["name"] = changes.get("name") or existing.name or UNNAMED_WORKOUT
            workout = merge(existing, changes)
            self.workouts.save(workout, conn)
            self.exercises.remove_for_workout(workout_id, conn)
            for ex in data.exercises:
                self.exercises.add(workout_id, ex.name, ex.sets, conn)
            return WorkoutWithExercises(
                workout=workout,
                exercises=self.exercises.fetch_for_workout(workout_id, conn),
            )

    def create_routine_with_exercises(
        self, data: RoutineWithExercisesInput
    ) -> RoutineWithExercises:
        with self.transaction() as conn:
            routine_id = self.routines.create(data.routine, conn)
            self._add_routine_items(routine_id, data, conn)
            return self._routine_result(routine_id, conn)

    def replace_routine_with_exercises(
        self, routine_id: int, data: RoutineWithExercisesInput
    ) -> Optional[RoutineWithExercises]:
        with self.transaction() as conn:
            existing = self.routines.fetch(routine_id, conn)
            if existing is None:
                return None
            self.routines.save(merge(existing, changes_of(data.routine)), conn)
            self.routine_exercises.remove_for_routine(routine_id, conn)
            self._add_routine_items(routine_id, data, conn)
            return self._routine_result(routine_id, conn)

    def _add_routine_items(self, routine_id: int, data: RoutineWithExercisesInput, conn) -> None:
        for item in data.exercises:
            fields = item.model_dump(exclude={"exercise_name"})
            self.routine_exercises.add(
                RoutineExerciseCreate(routine_id=routine_id, **fields), conn
            )

    def _routine_result(self, routine_id: int, conn) -> RoutineWithExercises:
        details = []
        for item in self.routine_exercises.fetch_for_routine(routine_id, conn):
            ex_type = self.exercise_types.fetch(item.exercise_type_id, conn)
            details.append(
                RoutineExerciseDetail(
                    **item.model_dump(), exercise_name=ex_type.name if ex_type else ""
                )
            )
        return RoutineWithExercises(
            routine=self.routines.fetch(routine_id, conn), exercises=details
        )
