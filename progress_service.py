from __future__ import annotations

from typing import List, Optional

from models import ExerciseSet, HistoryReport, LatestSet, ProgressPoint
from record_store import RecordStore


def heaviest_set(sets: List[ExerciseSet]) -> Optional[ExerciseSet]:
    """Return the set with the highest weight, the earliest one on ties."""
    best = None
    for s in sets:
        if best is None or s.weight > best.weight:
            best = s
    return best


class ProgressService:
    """Compute per-exercise weight progression from logged workouts."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def history_report(self, exercise_name: str) -> HistoryReport:
        """Return the progression of ``exercise_name`` with skip counts.

        Each logged exercise contributes its heaviest set dated by the
        owning workout. Exercises whose workout no longer exists and
        exercises without sets are skipped and counted.
        """
        points: List[ProgressPoint] = []
        orphaned = 0
        empty = 0
        workout_dates = {}
        for exercise in self.store.list_exercises_by_name(exercise_name):
            if exercise.workout_id not in workout_dates:
                workout = self.store.get_workout(exercise.workout_id)
                workout_dates[exercise.workout_id] = workout.date if workout else None
            date = workout_dates[exercise.workout_id]
            if date is None:
                orphaned += 1
                continue
            best = heaviest_set(exercise.sets)
            if best is None:
                empty += 1
                continue
            points.append(ProgressPoint(date=date, weight=best.weight, reps=best.reps))
        points.sort(key=lambda p: p.date)
        return HistoryReport(history=points, orphaned=orphaned, empty_sets=empty)

    def exercise_history(self, exercise_name: str) -> List[ProgressPoint]:
        return self.history_report(exercise_name).history

    def exercise_sets(self, exercise_name: str, limit: int) -> List[ProgressPoint]:
        """Return the ``limit`` most recent progression points, oldest first."""
        if limit <= 0:
            return []
        return self.exercise_history(exercise_name)[-limit:]

    def latest_exercise_set(self, exercise_name: str) -> Optional[LatestSet]:
        history = self.exercise_history(exercise_name)
        if not history:
            return None
        latest = history[-1]
        return LatestSet(weight=latest.weight, reps=latest.reps)
