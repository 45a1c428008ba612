import logging
import typing
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel

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
    WorkoutExerciseInput,
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

logger = logging.getLogger(__name__)

UNNAMED_WORKOUT = "Unnamed Workout"


def merge(existing: BaseModel, changes: dict) -> BaseModel:
    """Shallow-merge ``changes`` over ``existing``.

    A null value for a non-nullable field leaves the stored value alone.
    """
    fields = type(existing).model_fields
    data = existing.model_dump()
    for key, value in changes.items():
        if key not in fields or key == "id":
            continue
        if value is None and type(None) not in typing.get_args(fields[key].annotation):
            continue
        data[key] = value
    return type(existing).model_validate(data)


def workout_changes(update: WorkoutUpdate) -> dict:
    """Partial workout changes with an empty name dropped."""
    changes = changes_of(update)
    if not changes.get("name"):
        changes.pop("name", None)
    return changes


class RecordStore(ABC):
    """Keyed storage for all fitness entities.

    Lookups of missing ids return ``None`` (updates too) and deletes return
    ``False``. Invalid input raises ``ValueError``.
    """

    storage_type = "Unknown"

    # Workouts

    @abstractmethod
    def list_workouts(self) -> List[Workout]:
        """Return all workouts, most recent date first."""

    @abstractmethod
    def get_workout(self, workout_id: int) -> Optional[Workout]: ...

    @abstractmethod
    def create_workout(self, data: WorkoutCreate) -> Workout: ...

    @abstractmethod
    def update_workout(self, workout_id: int, data: WorkoutUpdate) -> Optional[Workout]: ...

    @abstractmethod
    def delete_workout(self, workout_id: int) -> bool:
        """Delete a workout together with its exercises."""

    # Exercises

    @abstractmethod
    def list_exercises(self, workout_id: int) -> List[Exercise]: ...

    @abstractmethod
    def list_exercises_by_name(self, name: str) -> List[Exercise]: ...

    @abstractmethod
    def get_exercise(self, exercise_id: int) -> Optional[Exercise]: ...

    @abstractmethod
    def create_exercise(self, data: ExerciseCreate) -> Exercise: ...

    @abstractmethod
    def update_exercise(self, exercise_id: int, data: ExerciseUpdate) -> Optional[Exercise]: ...

    @abstractmethod
    def delete_exercise(self, exercise_id: int) -> bool: ...

    # Exercise types

    @abstractmethod
    def list_exercise_types(self) -> List[ExerciseType]: ...

    @abstractmethod
    def get_exercise_type(self, type_id: int) -> Optional[ExerciseType]: ...

    @abstractmethod
    def get_exercise_type_by_name(self, name: str) -> Optional[ExerciseType]: ...

    @abstractmethod
    def create_exercise_type(self, data: ExerciseTypeCreate) -> ExerciseType: ...

    @abstractmethod
    def update_exercise_type(
        self, type_id: int, data: ExerciseTypeUpdate
    ) -> Optional[ExerciseType]:
        """Update a type and rename matching exercises and goals."""

    @abstractmethod
    def delete_exercise_type(self, type_id: int) -> bool: ...

    # Goals

    @abstractmethod
    def list_goals(self) -> List[Goal]: ...

    @abstractmethod
    def get_goal(self, goal_id: int) -> Optional[Goal]: ...

    @abstractmethod
    def create_goal(self, data: GoalCreate) -> Goal: ...

    @abstractmethod
    def update_goal(self, goal_id: int, data: GoalUpdate) -> Optional[Goal]: ...

    @abstractmethod
    def delete_goal(self, goal_id: int) -> bool: ...

    # Routines

    @abstractmethod
    def list_workout_routines(self) -> List[WorkoutRoutine]: ...

    @abstractmethod
    def get_workout_routine(self, routine_id: int) -> Optional[WorkoutRoutine]: ...

    @abstractmethod
    def create_workout_routine(self, data: WorkoutRoutineCreate) -> WorkoutRoutine: ...

    @abstractmethod
    def update_workout_routine(
        self, routine_id: int, data: WorkoutRoutineUpdate
    ) -> Optional[WorkoutRoutine]: ...

    @abstractmethod
    def delete_workout_routine(self, routine_id: int) -> bool:
        """Delete a routine together with its routine exercises."""

    @abstractmethod
    def list_routine_exercises(self, routine_id: int) -> List[RoutineExercise]:
        """Return the exercises of a routine ordered by ``order_index``."""

    @abstractmethod
    def get_routine_exercise(self, item_id: int) -> Optional[RoutineExercise]: ...

    @abstractmethod
    def create_routine_exercise(self, data: RoutineExerciseCreate) -> RoutineExercise: ...

    @abstractmethod
    def update_routine_exercise(
        self, item_id: int, data: RoutineExerciseUpdate
    ) -> Optional[RoutineExercise]: ...

    @abstractmethod
    def delete_routine_exercise(self, item_id: int) -> bool: ...

    # Combined operations, each applied as one unit

    @abstractmethod
    def create_workout_with_exercises(
        self, data: WorkoutWithExercisesInput
    ) -> WorkoutWithExercises: ...

    @abstractmethod
    def replace_workout_with_exercises(
        self, workout_id: int, data: WorkoutWithExercisesUpdate
    ) -> Optional[WorkoutWithExercises]:
        """Update a workout and swap its exercises for ``data.exercises``."""

    @abstractmethod
    def create_routine_with_exercises(
        self, data: RoutineWithExercisesInput
    ) -> RoutineWithExercises: ...

    @abstractmethod
    def replace_routine_with_exercises(
        self, routine_id: int, data: RoutineWithExercisesInput
    ) -> Optional[RoutineWithExercises]: ...

    # Reads composed from the primitives above

    def get_workout_with_exercises(self, workout_id: int) -> Optional[WorkoutWithExercises]:
        workout = self.get_workout(workout_id)
        if workout is None:
            return None
        return WorkoutWithExercises(workout=workout, exercises=self.list_exercises(workout_id))

    def recent_workouts(self, limit: int) -> List[WorkoutWithExercises]:
        return [
            WorkoutWithExercises(workout=w, exercises=self.list_exercises(w.id))
            for w in self.list_workouts()[: max(limit, 0)]
        ]

    def get_routine_with_exercises(self, routine_id: int) -> Optional[RoutineWithExercises]:
        routine = self.get_workout_routine(routine_id)
        if routine is None:
            return None
        return RoutineWithExercises(
            routine=routine,
            exercises=self._routine_details(self.list_routine_exercises(routine_id)),
        )

    def _routine_details(self, items: List[RoutineExercise]) -> List[RoutineExerciseDetail]:
        details = []
        for item in items:
            ex_type = self.get_exercise_type(item.exercise_type_id)
            details.append(
                RoutineExerciseDetail(
                    **item.model_dump(),
                    exercise_name=ex_type.name if ex_type else "",
                )
            )
        return details

    def convert_routine_to_workout(
        self, routine_id: int, date=None, name: Optional[str] = None
    ) -> Optional[WorkoutWithExercises]:
        """Start a workout from a routine template.

        Every routine exercise whose type still exists becomes an exercise
        pre-filled with ``default_sets`` empty sets.
        """
        routine = self.get_workout_routine(routine_id)
        if routine is None:
            return None
        exercises = []
        for item in self.list_routine_exercises(routine_id):
            ex_type = self.get_exercise_type(item.exercise_type_id)
            if ex_type is None:
                continue
            sets = [{"weight": 0, "reps": item.default_reps or 0}] * item.default_sets
            exercises.append(WorkoutExerciseInput(name=ex_type.name, sets=sets))
        return self.create_workout_with_exercises(
            WorkoutWithExercisesInput(
                workout=WorkoutCreate(name=name or routine.name, date=date),
                exercises=exercises,
            )
        )


class _Table:
    """Rows of one entity type plus its id sequence."""

    def __init__(self) -> None:
        self.rows: Dict[int, BaseModel] = {}
        self.next_id = 1

    def insert(self, model: type, **fields) -> BaseModel:
        row = model(id=self.next_id, **fields)
        self.rows[row.id] = row
        self.next_id += 1
        return row.model_copy(deep=True)

    def get(self, row_id: int) -> Optional[BaseModel]:
        row = self.rows.get(row_id)
        return row.model_copy(deep=True) if row is not None else None

    def all(self) -> List[BaseModel]:
        return [row.model_copy(deep=True) for row in self.rows.values()]

    def replace(self, row: BaseModel) -> BaseModel:
        self.rows[row.id] = row
        return row.model_copy(deep=True)

    def delete(self, row_id: int) -> bool:
        return self.rows.pop(row_id, None) is not None


class MemoryRecordStore(RecordStore):
    """Process-local store used when no durable database is available.

    Data lives only as long as the process. There is no locking; concurrent
    writers race with last-write-wins semantics.
    """

    storage_type = "Memory"

    def __init__(self) -> None:
        self.workouts = _Table()
        self.exercises = _Table()
        self.exercise_types = _Table()
        self.goals = _Table()
        self.routines = _Table()
        self.routine_exercises = _Table()

    # Workouts

    def list_workouts(self) -> List[Workout]:
        return sorted(self.workouts.all(), key=lambda w: w.date, reverse=True)

    def get_workout(self, workout_id: int) -> Optional[Workout]:
        return self.workouts.get(workout_id)

    def create_workout(self, data: WorkoutCreate) -> Workout:
        fields = data.model_dump()
        fields["date"] = fields["date"] or utcnow()
        return self.workouts.insert(Workout, **fields)

    def update_workout(self, workout_id: int, data: WorkoutUpdate) -> Optional[Workout]:
        existing = self.workouts.rows.get(workout_id)
        if existing is None:
            return None
        return self.workouts.replace(merge(existing, workout_changes(data)))

    def delete_workout(self, workout_id: int) -> bool:
        for ex in [e for e in self.exercises.rows.values() if e.workout_id == workout_id]:
            self.exercises.delete(ex.id)
        return self.workouts.delete(workout_id)

    # Exercises

    def list_exercises(self, workout_id: int) -> List[Exercise]:
        return [e for e in self.exercises.all() if e.workout_id == workout_id]

    def list_exercises_by_name(self, name: str) -> List[Exercise]:
        return [e for e in self.exercises.all() if e.name == name]

    def get_exercise(self, exercise_id: int) -> Optional[Exercise]:
        return self.exercises.get(exercise_id)

    def _require_workout(self, workout_id: int) -> None:
        if workout_id not in self.workouts.rows:
            raise ValueError(f"workout {workout_id} not found")

    def create_exercise(self, data: ExerciseCreate) -> Exercise:
        self._require_workout(data.workout_id)
        return self.exercises.insert(Exercise, **data.model_dump())

    def update_exercise(self, exercise_id: int, data: ExerciseUpdate) -> Optional[Exercise]:
        existing = self.exercises.rows.get(exercise_id)
        if existing is None:
            return None
        updated = merge(existing, changes_of(data))
        if updated.workout_id != existing.workout_id:
            self._require_workout(updated.workout_id)
        return self.exercises.replace(updated)

    def delete_exercise(self, exercise_id: int) -> bool:
        return self.exercises.delete(exercise_id)

    # Exercise types

    def list_exercise_types(self) -> List[ExerciseType]:
        return self.exercise_types.all()

    def get_exercise_type(self, type_id: int) -> Optional[ExerciseType]:
        return self.exercise_types.get(type_id)

    def get_exercise_type_by_name(self, name: str) -> Optional[ExerciseType]:
        for row in self.exercise_types.rows.values():
            if row.name == name:
                return row.model_copy(deep=True)
        return None

    def create_exercise_type(self, data: ExerciseTypeCreate) -> ExerciseType:
        if self.get_exercise_type_by_name(data.name) is not None:
            raise ValueError(f"exercise type '{data.name}' already exists")
        return self.exercise_types.insert(
            ExerciseType, **data.model_dump(), created_at=utcnow()
        )

    def update_exercise_type(
        self, type_id: int, data: ExerciseTypeUpdate
    ) -> Optional[ExerciseType]:
        existing = self.exercise_types.rows.get(type_id)
        if existing is None:
            return None
        changes = changes_of(data)
        new_name = changes.get("name")
        if new_name and new_name != existing.name:
            other = self.get_exercise_type_by_name(new_name)
            if other is not None and other.id != type_id:
                raise ValueError(f"exercise type '{new_name}' already exists")
        old_name = existing.name
        updated = self.exercise_types.replace(merge(existing, changes))
        if updated.name != old_name:
            self._propagate_rename(old_name, updated.name)
        return updated

    def _propagate_rename(self, old_name: str, new_name: str) -> None:
        renamed = 0
        for ex in self.exercises.rows.values():
            if ex.name == old_name:
                ex.name = new_name
                renamed += 1
        for goal in self.goals.rows.values():
            if goal.exercise_name == old_name:
                goal.exercise_name = new_name
                renamed += 1
        logger.info("renamed %d records from '%s' to '%s'", renamed, old_name, new_name)

    def delete_exercise_type(self, type_id: int) -> bool:
        return self.exercise_types.delete(type_id)

    # Goals

    def list_goals(self) -> List[Goal]:
        return self.goals.all()

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        return self.goals.get(goal_id)

    def create_goal(self, data: GoalCreate) -> Goal:
        return self.goals.insert(Goal, **data.model_dump())

    def update_goal(self, goal_id: int, data: GoalUpdate) -> Optional[Goal]:
        existing = self.goals.rows.get(goal_id)
        if existing is None:
            return None
        return self.goals.replace(merge(existing, changes_of(data)))

    def delete_goal(self, goal_id: int) -> bool:
        return self.goals.delete(goal_id)

    # Routines

    def list_workout_routines(self) -> List[WorkoutRoutine]:
        return self.routines.all()

    def get_workout_routine(self, routine_id: int) -> Optional[WorkoutRoutine]:
        return self.routines.get(routine_id)

    def create_workout_routine(self, data: WorkoutRoutineCreate) -> WorkoutRoutine:
        return self.routines.insert(WorkoutRoutine, **data.model_dump(), created_at=utcnow())

    def update_workout_routine(
        self, routine_id: int, data: WorkoutRoutineUpdate
    ) -> Optional[WorkoutRoutine]:
        existing = self.routines.rows.get(routine_id)
        if existing is None:
            return None
        return self.routines.replace(merge(existing, changes_of(data)))

    def delete_workout_routine(self, routine_id: int) -> bool:
        for item in [r for r in self.routine_exercises.rows.values() if r.routine_id == routine_id]:
            self.routine_exercises.delete(item.id)
        return self.routines.delete(routine_id)

    def list_routine_exercises(self, routine_id: int) -> List[RoutineExercise]:
        items = [r for r in self.routine_exercises.all() if r.routine_id == routine_id]
        return sorted(items, key=lambda r: r.order_index)

    def get_routine_exercise(self, item_id: int) -> Optional[RoutineExercise]:
        return self.routine_exercises.get(item_id)

    def _require_routine(self, routine_id: int) -> None:
        if routine_id not in self.routines.rows:
            raise ValueError(f"workout routine {routine_id} not found")

    def create_routine_exercise(self, data: RoutineExerciseCreate) -> RoutineExercise:
        self._require_routine(data.routine_id)
        return self.routine_exercises.insert(RoutineExercise, **data.model_dump())

    def update_routine_exercise(
        self, item_id: int, data: RoutineExerciseUpdate
    ) -> Optional[RoutineExercise]:
        existing = self.routine_exercises.rows.get(item_id)
        if existing is None:
            return None
        updated = merge(existing, changes_of(data))
        if updated.routine_id != existing.routine_id:
            self._require_routine(updated.routine_id)
        return self.routine_exercises.replace(updated)

    def delete_routine_exercise(self, item_id: int) -> bool:
        return self.routine_exercises.delete(item_id)

    # Combined operations

    def create_workout_with_exercises(
        self, data: WorkoutWithExercisesInput
    ) -> WorkoutWithExercises:
        workout = self.create_workout(data.workout)
        exercises = [
            self.create_exercise(ExerciseCreate(workout_id=workout.id, **ex.model_dump()))
            for ex in data.exercises
        ]
        return WorkoutWithExercises(workout=workout, exercises=exercises)

    def replace_workout_with_exercises(
        self, workout_id: int, data: WorkoutWithExercisesUpdate
    ) -> Optional[WorkoutWithExercises]:
        existing = self.workouts.rows.get(workout_id)
        if existing is None:
            return None
        changes = workout_changes(data.workout)
        changes["name"] = changes.get("name") or existing.name or UNNAMED_WORKOUT
        workout = self.workouts.replace(merge(existing, changes))
        for ex in [e for e in self.exercises.rows.values() if e.workout_id == workout_id]:
            self.exercises.delete(ex.id)
        exercises = [
            self.create_exercise(ExerciseCreate(workout_id=workout_id, **ex.model_dump()))
            for ex in data.exercises
        ]
        return WorkoutWithExercises(workout=workout, exercises=exercises)

    def create_routine_with_exercises(
        self, data: RoutineWithExercisesInput
    ) -> RoutineWithExercises:
        routine = self.create_workout_routine(data.routine)
        self._add_routine_items(routine.id, data)
        return self.get_routine_with_exercises(routine.id)

    def replace_routine_with_exercises(
        self, routine_id: int, data: RoutineWithExercisesInput
    ) -> Optional[RoutineWithExercises]:
        existing = self.routines.rows.get(routine_id)
        if existing is None:
            return None
        self.routines.replace(merge(existing, changes_of(data.routine)))
        for item in [r for r in self.routine_exercises.rows.values() if r.routine_id == routine_id]:
            self.routine_exercises.delete(item.id)
        self._add_routine_items(routine_id, data)
        return self.get_routine_with_exercises(routine_id)

    def _add_routine_items(self, routine_id: int, data: RoutineWithExercisesInput) -> None:
        for item in data.exercises:
            fields = item.model_dump(exclude={"exercise_name"})
            self.create_routine_exercise(RoutineExerciseCreate(routine_id=routine_id, **fields))
