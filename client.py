import requests
from typing import List, Optional


def _segment(name: str) -> str:
    """Quote a value used as a single URL path segment."""
    return requests.utils.quote(name, safe="")


class FitnessClient:
    """Simple REST client for the fitness tracker API."""

    def __init__(self, base_url: str = "http://localhost:8000", session=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api{path}"

    def _get(self, path: str, **params):
        resp = self.session.get(self._url(path), params=params or None)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, payload: dict):
        resp = self.session.post(self._url(path), json=payload)
        resp.raise_for_status()
        return resp.json()

    def storage_status(self) -> dict:
        return self._get("/storage-status")

    def create_workout(self, name: str, date: Optional[str] = None, **fields) -> int:
        payload = {"name": name, **fields}
        if date is not None:
            payload["date"] = date
        return self._post("/workouts", payload)["id"]

    def list_workouts(self) -> List[dict]:
        return self._get("/workouts")

    def create_workout_with_exercises(
        self, name: str, exercises: List[dict], date: Optional[str] = None
    ) -> dict:
        workout = {"name": name}
        if date is not None:
            workout["date"] = date
        return self._post(
            "/workout-with-exercises", {"workout": workout, "exercises": exercises}
        )

    def exercise_history(self, name: str) -> List[dict]:
        return self._get(f"/exercise-history/{_segment(name)}")

    def latest_set(self, name: str) -> dict:
        return self._get(f"/exercise-latest/{_segment(name)}")
