import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def parse_timestamp(value):
    """Coerce ISO strings and dates to naive UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    if isinstance(value, datetime.datetime) and value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


Timestamp = Annotated[datetime.datetime, BeforeValidator(parse_timestamp)]


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ExerciseSet(CamelModel):
    weight: float
    reps: int


# Stored entities


class ExerciseType(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    created_at: Timestamp


class Workout(CamelModel):
    id: int
    name: str
    date: Timestamp
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None


class Exercise(CamelModel):
    id: int
    workout_id: int
    name: str
    sets: List[ExerciseSet] = []


class Goal(CamelModel):
    id: int
    name: str
    exercise_name: Optional[str] = None
    target_weight: Optional[float] = None
    target_reps: Optional[int] = None
    target_date: Optional[Timestamp] = None
    is_completed: bool = False
    current_progress: Optional[float] = None


class WorkoutRoutine(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    created_at: Timestamp


class RoutineExercise(CamelModel):
    id: int
    routine_id: int
    exercise_type_id: int
    order_index: int
    default_sets: int = 3
    default_reps: Optional[int] = None
    notes: Optional[str] = None


# Create payloads


class ExerciseTypeCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None


class WorkoutCreate(CamelModel):
    name: str = Field(min_length=1)
    date: Optional[Timestamp] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class ExerciseCreate(CamelModel):
    workout_id: int
    name: str = Field(min_length=1)
    sets: List[ExerciseSet] = []


class GoalCreate(CamelModel):
    name: str = Field(min_length=1)
    exercise_name: Optional[str] = None
    target_weight: Optional[float] = None
    target_reps: Optional[int] = None
    target_date: Optional[Timestamp] = None
    is_completed: bool = False
    current_progress: Optional[float] = None


class WorkoutRoutineCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None


class RoutineExerciseCreate(CamelModel):
    routine_id: int
    exercise_type_id: int
    order_index: int
    default_sets: int = Field(default=3, ge=0)
    default_reps: Optional[int] = None
    notes: Optional[str] = None


# Partial updates: only fields present in the payload are applied


class ExerciseTypeUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None


class WorkoutUpdate(CamelModel):
    name: Optional[str] = None
    date: Optional[Timestamp] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class ExerciseUpdate(CamelModel):
    workout_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1)
    sets: Optional[List[ExerciseSet]] = None


class GoalUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    exercise_name: Optional[str] = None
    target_weight: Optional[float] = None
    target_reps: Optional[int] = None
    target_date: Optional[Timestamp] = None
    is_completed: Optional[bool] = None
    current_progress: Optional[float] = None


class WorkoutRoutineUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None


class RoutineExerciseUpdate(CamelModel):
    routine_id: Optional[int] = None
    exercise_type_id: Optional[int] = None
    order_index: Optional[int] = None
    default_sets: Optional[int] = Field(default=None, ge=0)
    default_reps: Optional[int] = None
    notes: Optional[str] = None


def changes_of(update: BaseModel) -> dict:
    """Return only the fields explicitly present in a partial update."""
    return update.model_dump(exclude_unset=True)


# Combined payloads


class WorkoutExerciseInput(CamelModel):
    name: str = Field(min_length=1)
    sets: List[ExerciseSet] = []


class WorkoutWithExercisesInput(CamelModel):
    workout: WorkoutCreate
    exercises: List[WorkoutExerciseInput] = []


class WorkoutWithExercisesUpdate(CamelModel):
    workout: WorkoutUpdate
    exercises: List[WorkoutExerciseInput] = []


class RoutineExerciseInput(CamelModel):
    exercise_type_id: int
    exercise_name: str = ""
    order_index: int
    default_sets: int = Field(default=3, ge=0)
    default_reps: Optional[int] = None
    notes: Optional[str] = None


class RoutineWithExercisesInput(CamelModel):
    routine: WorkoutRoutineCreate
    exercises: List[RoutineExerciseInput] = []


class ConvertRoutineInput(CamelModel):
    date: Optional[Timestamp] = None
    name: Optional[str] = None


# Progress


class ProgressPoint(CamelModel):
    date: Timestamp
    weight: float
    reps: int


class LatestSet(CamelModel):
    weight: float
    reps: int


class HistoryReport(CamelModel):
    history: List[ProgressPoint] = []
    orphaned: int = 0
    empty_sets: int = 0


# Combined results


class WorkoutWithExercises(CamelModel):
    workout: Workout
    exercises: List[Exercise] = []


class RoutineExerciseDetail(RoutineExercise):
    exercise_name: str = ""


class RoutineWithExercises(CamelModel):
    routine: WorkoutRoutine
    exercises: List[RoutineExerciseDetail] = []
