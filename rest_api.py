import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Body, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import YamlConfig
from models import (
    ConvertRoutineInput,
    ExerciseCreate,
    ExerciseTypeCreate,
    ExerciseTypeUpdate,
    ExerciseUpdate,
    GoalCreate,
    GoalUpdate,
    ProgressPoint,
    RoutineExerciseCreate,
    RoutineExerciseUpdate,
    RoutineWithExercisesInput,
    WorkoutCreate,
    WorkoutRoutineCreate,
    WorkoutRoutineUpdate,
    WorkoutUpdate,
    WorkoutWithExercises,
    WorkoutWithExercisesInput,
    WorkoutWithExercisesUpdate,
)
from progress_service import ProgressService
from record_store import RecordStore
from seed_sample_data import seed
from storage import FallbackStorage, create_storage

logger = logging.getLogger(__name__)


def short_date(value: datetime.datetime) -> str:
    """Format a date like ``Jan 5``."""
    return f"{value:%b} {value.day}"


def long_date(value: datetime.datetime) -> str:
    """Format a date like ``Jan 5, 2024``."""
    return f"{value:%b} {value.day}, {value.year}"


def progress_entry(point: ProgressPoint) -> dict:
    data = point.to_json()
    data["formattedDate"] = short_date(point.date)
    return data


def workout_summary(item: WorkoutWithExercises) -> dict:
    workout = item.workout
    return {
        "id": workout.id,
        "name": workout.name,
        "date": workout.to_json()["date"],
        "formattedDate": long_date(workout.date),
        "durationMinutes": workout.duration_minutes,
        "exerciseCount": len(item.exercises),
        "exercises": [e.name for e in item.exercises[:3]],
        "totalExercises": len(item.exercises),
    }


def _found(value, what: str):
    if value is None or value is False:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return value


class FitnessAPI:
    """Provides REST endpoints for workout logging and progress tracking."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        yaml_path: str = "settings.yaml",
        *,
        storage: Optional[RecordStore] = None,
    ) -> None:
        self.config = YamlConfig(yaml_path)
        self.settings = self.config.settings()
        self.db_path = db_path or self.settings.db_path
        if storage is None:
            storage = create_storage(self.settings.storage, self.db_path)
        self.storage = storage
        self.progress = ProgressService(self.storage)
        if self.settings.seed_data:
            seed(self.storage)
        self.app = FastAPI(title="Fitness Tracker API")
        self._setup_routes()

    def storage_status(self) -> dict:
        if isinstance(self.storage, FallbackStorage):
            return self.storage.storage_status()
        return {
            "storageType": self.storage.storage_type,
            "mode": "direct",
            "isUsingDurable": self.storage.storage_type != "Memory",
            "warning": None,
            "message": f"Connected to {self.storage.storage_type} database",
        }

    def _setup_routes(self) -> None:
        router = APIRouter(prefix="/api")
        store = self.storage

        @self.app.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError):
            return JSONResponse(
                status_code=400,
                content={"detail": "invalid request", "errors": exc.errors()},
            )

        @self.app.exception_handler(Exception)
        async def unexpected_error(request: Request, exc: Exception):
            logger.error(
                "unhandled error on %s %s", request.method, request.url.path, exc_info=exc
            )
            return JSONResponse(status_code=500, content={"detail": "internal server error"})

        @router.get("/health")
        def health():
            return {"status": "ok", "storageType": store.storage_type}

        @router.get("/storage-status")
        def storage_status():
            return self.storage_status()

        # Workouts

        @router.get("/workouts")
        def list_workouts():
            return [w.to_json() for w in store.list_workouts()]

        @router.post("/workouts", status_code=201)
        def create_workout(payload: dict = Body(...)):
            try:
                return store.create_workout(WorkoutCreate.model_validate(payload)).to_json()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @router.get("/workouts/{workout_id}")
        def get_workout(workout_id: int):
            return _found(store.get_workout(workout_id), "workout").to_json()

        @router.put("/workouts/{workout_id}")
        def update_workout(workout_id: int, payload: dict = Body(...)):
            try:
                updated = store.update_workout(workout_id, WorkoutUpdate.model_validate(payload))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "workout").to_json()

        @router.delete("/workouts/{workout_id}")
        def delete_workout(workout_id: int):
            _found(store.delete_workout(workout_id), "workout")
            return Response(status_code=204)

        @router.get("/workouts/{workout_id}/exercises")
        def list_workout_exercises(workout_id: int):
            return [e.to_json() for e in store.list_exercises(workout_id)]

        # Exercises

        @router.post("/exercises", status_code=201)
        def create_exercise(payload: dict = Body(...)):
            try:
                return store.create_exercise(ExerciseCreate.model_validate(payload)).to_json()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @router.get("/exercises/{exercise_id}")
        def get_exercise(exercise_id: int):
            return _found(store.get_exercise(exercise_id), "exercise").to_json()

        @router.put("/exercises/{exercise_id}")
        def update_exercise(exercise_id: int, payload: dict = Body(...)):
            try:
                updated = store.update_exercise(exercise_id, ExerciseUpdate.model_validate(payload))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "exercise").to_json()

        @router.delete("/exercises/{exercise_id}")
        def delete_exercise(exercise_id: int):
            _found(store.delete_exercise(exercise_id), "exercise")
            return Response(status_code=204)

        # Exercise types

        @router.get("/exercise-types")
        def list_exercise_types():
            return [t.to_json() for t in store.list_exercise_types()]

        @router.post("/exercise-types", status_code=201)
        def create_exercise_type(payload: dict = Body(...)):
            try:
                created = store.create_exercise_type(ExerciseTypeCreate.model_validate(payload))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return created.to_json()

        @router.get("/exercise-types/by-name/{name:path}")
        def get_exercise_type_by_name(name: str):
            return _found(store.get_exercise_type_by_name(name), "exercise type").to_json()

        @router.get("/exercise-types/{type_id}")
        def get_exercise_type(type_id: int):
            return _found(store.get_exercise_type(type_id), "exercise type").to_json()

        @router.put("/exercise-types/{type_id}")
        def update_exercise_type(type_id: int, payload: dict = Body(...)):
            try:
                updated = store.update_exercise_type(
                    type_id, ExerciseTypeUpdate.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "exercise type").to_json()

        @router.delete("/exercise-types/{type_id}")
        def delete_exercise_type(type_id: int):
            _found(store.delete_exercise_type(type_id), "exercise type")
            return Response(status_code=204)

        # Goals

        @router.get("/goals")
        def list_goals():
            return [g.to_json() for g in store.list_goals()]

        @router.post("/goals", status_code=201)
        def create_goal(payload: dict = Body(...)):
            try:
                return store.create_goal(GoalCreate.model_validate(payload)).to_json()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @router.get("/goals/{goal_id}")
        def get_goal(goal_id: int):
            return _found(store.get_goal(goal_id), "goal").to_json()

        @router.put("/goals/{goal_id}")
        def update_goal(goal_id: int, payload: dict = Body(...)):
            try:
                updated = store.update_goal(goal_id, GoalUpdate.model_validate(payload))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "goal").to_json()

        @router.delete("/goals/{goal_id}")
        def delete_goal(goal_id: int):
            _found(store.delete_goal(goal_id), "goal")
            return Response(status_code=204)

        # Routines

        @router.get("/workout-routines")
        def list_workout_routines():
            return [r.to_json() for r in store.list_workout_routines()]

        @router.post("/workout-routines", status_code=201)
        def create_workout_routine(payload: dict = Body(...)):
            try:
                created = store.create_workout_routine(
                    WorkoutRoutineCreate.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return created.to_json()

        @router.get("/workout-routines/{routine_id}")
        def get_workout_routine(routine_id: int):
            return _found(store.get_workout_routine(routine_id), "routine").to_json()

        @router.put("/workout-routines/{routine_id}")
        def update_workout_routine(routine_id: int, payload: dict = Body(...)):
            try:
                updated = store.update_workout_routine(
                    routine_id, WorkoutRoutineUpdate.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "routine").to_json()

        @router.delete("/workout-routines/{routine_id}")
        def delete_workout_routine(routine_id: int):
            _found(store.delete_workout_routine(routine_id), "routine")
            return Response(status_code=204)

        @router.get("/workout-routines/{routine_id}/exercises")
        def list_routine_exercises(routine_id: int):
            return [r.to_json() for r in store.list_routine_exercises(routine_id)]

        @router.post("/routine-exercises", status_code=201)
        def create_routine_exercise(payload: dict = Body(...)):
            try:
                created = store.create_routine_exercise(
                    RoutineExerciseCreate.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return created.to_json()

        @router.get("/routine-exercises/{item_id}")
        def get_routine_exercise(item_id: int):
            return _found(store.get_routine_exercise(item_id), "routine exercise").to_json()

        @router.put("/routine-exercises/{item_id}")
        def update_routine_exercise(item_id: int, payload: dict = Body(...)):
            try:
                updated = store.update_routine_exercise(
                    item_id, RoutineExerciseUpdate.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "routine exercise").to_json()

        @router.delete("/routine-exercises/{item_id}")
        def delete_routine_exercise(item_id: int):
            _found(store.delete_routine_exercise(item_id), "routine exercise")
            return Response(status_code=204)

        # Combined operations

        @router.post("/workout-with-exercises", status_code=201)
        def create_workout_with_exercises(payload: dict = Body(...)):
            try:
                created = store.create_workout_with_exercises(
                    WorkoutWithExercisesInput.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return created.to_json()

        @router.get("/workout-with-exercises/{workout_id}")
        def get_workout_with_exercises(workout_id: int):
            return _found(store.get_workout_with_exercises(workout_id), "workout").to_json()

        @router.put("/workout-with-exercises/{workout_id}")
        def replace_workout_with_exercises(workout_id: int, payload: dict = Body(...)):
            try:
                updated = store.replace_workout_with_exercises(
                    workout_id, WorkoutWithExercisesUpdate.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "workout").to_json()

        @router.get("/recent-workouts")
        def recent_workouts(limit: Optional[int] = None):
            if limit is None:
                limit = self.settings.recent_workouts_limit
            return [workout_summary(item) for item in store.recent_workouts(limit)]

        @router.post("/routine-with-exercises", status_code=201)
        def create_routine_with_exercises(payload: dict = Body(...)):
            try:
                created = store.create_routine_with_exercises(
                    RoutineWithExercisesInput.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return created.to_json()

        @router.get("/routine-with-exercises/{routine_id}")
        def get_routine_with_exercises(routine_id: int):
            return _found(store.get_routine_with_exercises(routine_id), "routine").to_json()

        @router.put("/routine-with-exercises/{routine_id}")
        def replace_routine_with_exercises(routine_id: int, payload: dict = Body(...)):
            try:
                updated = store.replace_routine_with_exercises(
                    routine_id, RoutineWithExercisesInput.model_validate(payload)
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(updated, "routine").to_json()

        @router.post("/convert-routine-to-workout/{routine_id}", status_code=201)
        def convert_routine_to_workout(routine_id: int, payload: Optional[dict] = Body(None)):
            try:
                options = ConvertRoutineInput.model_validate(payload or {})
                created = store.convert_routine_to_workout(
                    routine_id, options.date, options.name
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _found(created, "routine").to_json()

        # Progress

        @router.get("/exercise-history/{name:path}")
        def exercise_history(name: str, strict: bool = False):
            if strict:
                report = self.progress.history_report(name)
                data = report.to_json()
                data["history"] = [progress_entry(p) for p in report.history]
                return data
            return [progress_entry(p) for p in self.progress.exercise_history(name)]

        @router.get("/exercise-sets/{name:path}")
        def exercise_sets(name: str, limit: Optional[int] = None):
            if limit is None:
                limit = self.settings.exercise_sets_limit
            return [progress_entry(p) for p in self.progress.exercise_sets(name, limit)]

        @router.get("/exercise-latest/{name:path}")
        def exercise_latest(name: str):
            latest = self.progress.latest_exercise_set(name)
            if latest is None:
                return {"weight": 0, "reps": 0}
            return latest.to_json()

        self.app.include_router(router)


api = FitnessAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
