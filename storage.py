import enum
import logging
from typing import Callable, Optional

from db import SqliteRecordStore
from record_store import MemoryRecordStore, RecordStore

logger = logging.getLogger(__name__)


class StorageMode(enum.Enum):
    DURABLE = "durable"
    FALLBACK = "fallback"


class FallbackStorage(RecordStore):
    """Record store preferring a durable backend over an in-memory one.

    The first failure of the durable store switches every later call, for
    the rest of the process, to the in-memory store; the failed call is
    replayed there. The two stores share no data, so records written to the
    durable store before the switch are not visible afterwards.
    ``ValueError`` signals bad input and never triggers the switch.
    """

    def __init__(
        self,
        durable: Optional[RecordStore],
        memory: Optional[RecordStore] = None,
    ) -> None:
        self.durable = durable
        self.memory = memory if memory is not None else MemoryRecordStore()
        self.mode = StorageMode.DURABLE if durable is not None else StorageMode.FALLBACK
        self.last_error: Optional[BaseException] = None

    @property
    def storage_type(self) -> str:
        return self.active.storage_type

    @property
    def active(self) -> RecordStore:
        if self.mode is StorageMode.DURABLE:
            return self.durable
        return self.memory

    def is_using_durable(self) -> bool:
        return self.mode is StorageMode.DURABLE

    def fall_back(self, error: BaseException) -> None:
        if self.mode is StorageMode.FALLBACK:
            return
        self.mode = StorageMode.FALLBACK
        self.last_error = error
        logger.error(
            "%s storage failed, switching to in-memory storage for the rest of this process",
            self.durable.storage_type,
            exc_info=error,
        )

    def _run(self, operation: str, *args):
        if self.mode is StorageMode.DURABLE:
            try:
                return getattr(self.durable, operation)(*args)
            except ValueError:
                raise
            except Exception as e:
                self.fall_back(e)
        return getattr(self.memory, operation)(*args)

    def storage_status(self) -> dict:
        durable = self.is_using_durable()
        return {
            "storageType": self.storage_type,
            "mode": self.mode.value,
            "isUsingDurable": durable,
            "warning": None
            if durable
            else "Using in-memory storage, data will be lost on server restart.",
            "message": f"Connected to {self.storage_type} database"
            if durable
            else "Durable storage unavailable, using fallback memory storage",
        }

    # Workouts

    def list_workouts(self):
        return self._run("list_workouts")

    def get_workout(self, workout_id):
        return self._run("get_workout", workout_id)

    def create_workout(self, data):
        return self._run("create_workout", data)

    def update_workout(self, workout_id, data):
        return self._run("update_workout", workout_id, data)

    def delete_workout(self, workout_id):
        return self._run("delete_workout", workout_id)

    # Exercises

    def list_exercises(self, workout_id):
        return self._run("list_exercises", workout_id)

    def list_exercises_by_name(self, name):
        return self._run("list_exercises_by_name", name)

    def get_exercise(self, exercise_id):
        return self._run("get_exercise", exercise_id)

    def create_exercise(self, data):
        return self._run("create_exercise", data)

    def update_exercise(self, exercise_id, data):
        return self._run("update_exercise", exercise_id, data)

    def delete_exercise(self, exercise_id):
        return self._run("delete_exercise", exercise_id)

    # Exercise types

    def list_exercise_types(self):
        return self._run("list_exercise_types")

    def get_exercise_type(self, type_id):
        return self._run("get_exercise_type", type_id)

    def get_exercise_type_by_name(self, name):
        return self._run("get_exercise_type_by_name", name)

    def create_exercise_type(self, data):
        return self._run("create_exercise_type", data)

    def update_exercise_type(self, type_id, data):
        return self._run("update_exercise_type", type_id, data)

    def delete_exercise_type(self, type_id):
        return self._run("delete_exercise_type", type_id)

    # Goals

    def list_goals(self):
        return self._run("list_goals")

    def get_goal(self, goal_id):
        return self._run("get_goal", goal_id)

    def create_goal(self, data):
        return self._run("create_goal", data)

    def update_goal(self, goal_id, data):
        return self._run("update_goal", goal_id, data)

    def delete_goal(self, goal_id):
        return self._run("delete_goal", goal_id)

    # Routines

    def list_workout_routines(self):
        return self._run("list_workout_routines")

    def get_workout_routine(self, routine_id):
        return self._run("get_workout_routine", routine_id)

    def create_workout_routine(self, data):
        return self._run("create_workout_routine", data)

    def update_workout_routine(self, routine_id, data):
        return self._run("update_workout_routine", routine_id, data)

    def delete_workout_routine(self, routine_id):
        return self._run("delete_workout_routine", routine_id)

    def list_routine_exercises(self, routine_id):
        return self._run("list_routine_exercises", routine_id)

    def get_routine_exercise(self, item_id):
        return self._run("get_routine_exercise", item_id)

    def create_routine_exercise(self, data):
        return self._run("create_routine_exercise", data)

    def update_routine_exercise(self, item_id, data):
        return self._run("update_routine_exercise", item_id, data)

    def delete_routine_exercise(self, item_id):
        return self._run("delete_routine_exercise", item_id)

    # Combined operations

    def create_workout_with_exercises(self, data):
        return self._run("create_workout_with_exercises", data)

    def replace_workout_with_exercises(self, workout_id, data):
        return self._run("replace_workout_with_exercises", workout_id, data)

    def get_workout_with_exercises(self, workout_id):
        return self._run("get_workout_with_exercises", workout_id)

    def recent_workouts(self, limit):
        return self._run("recent_workouts", limit)

    def create_routine_with_exercises(self, data):
        return self._run("create_routine_with_exercises", data)

    def replace_routine_with_exercises(self, routine_id, data):
        return self._run("replace_routine_with_exercises", routine_id, data)

    def get_routine_with_exercises(self, routine_id):
        return self._run("get_routine_with_exercises", routine_id)

    def convert_routine_to_workout(self, routine_id, date=None, name=None):
        return self._run("convert_routine_to_workout", routine_id, date, name)


def create_storage(
    backend: str = "sqlite",
    db_path: str = "fitness.db",
    durable_factory: Callable[[str], RecordStore] = SqliteRecordStore,
) -> FallbackStorage:
    """Build the application storage.

    A durable store that cannot even be opened starts the adapter in
    fallback mode.
    """
    if backend == "memory":
        return FallbackStorage(None)
    try:
        durable = durable_factory(db_path)
    except Exception as e:
        storage = FallbackStorage(None)
        storage.last_error = e
        logger.error(
            "could not open database at %s, using in-memory storage", db_path, exc_info=e
        )
        return storage
    return FallbackStorage(durable)
