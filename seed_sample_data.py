import datetime
import logging

from config import YamlConfig, configure_logging
from models import (
    ExerciseTypeCreate,
    GoalCreate,
    WorkoutCreate,
    WorkoutExerciseInput,
    WorkoutWithExercisesInput,
)
from record_store import RecordStore
from storage import create_storage

logger = logging.getLogger(__name__)

EXERCISE_TYPES = [
    ("Bench Press", "Compound chest exercise", "Chest"),
    ("Squat", "Compound leg exercise", "Legs"),
    ("Deadlift", "Compound back exercise", "Back"),
]


def seed(store: RecordStore) -> bool:
    """Insert starter data into an empty store. Returns whether anything was added."""
    if store.list_exercise_types():
        logger.info("store already contains exercise types, skipping seed")
        return False

    for name, description, category in EXERCISE_TYPES:
        store.create_exercise_type(
            ExerciseTypeCreate(name=name, description=description, category=category)
        )
    store.create_goal(
        GoalCreate(name="Weekly Workouts", target_reps=5, current_progress=0)
    )
    store.create_goal(
        GoalCreate(
            name="Increase Bench Press",
            exercise_name="Bench Press",
            target_weight=120.0,
            current_progress=105.0,
            target_date=datetime.date.today() + datetime.timedelta(days=30),
        )
    )
    store.create_workout_with_exercises(
        WorkoutWithExercisesInput(
            workout=WorkoutCreate(name="Sample session", duration_minutes=45),
            exercises=[
                WorkoutExerciseInput(
                    name="Bench Press",
                    sets=[{"weight": 100.0, "reps": 5}, {"weight": 105.0, "reps": 3}],
                ),
                WorkoutExerciseInput(name="Squat", sets=[{"weight": 120.0, "reps": 5}]),
            ],
        )
    )
    logger.info("seed data inserted")
    return True


if __name__ == "__main__":
    settings = YamlConfig().settings()
    configure_logging(settings.log_level)
    seed(create_storage(settings.storage, settings.db_path))
