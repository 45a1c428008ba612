from typing import Literal

from pydantic import BaseModel, ValidationError, field_validator


class SettingsSchema(BaseModel):
    db_path: str = "fitness.db"
    storage: Literal["sqlite", "memory"] = "sqlite"
    log_level: str = "INFO"
    seed_data: bool = False
    recent_workouts_limit: int = 5
    exercise_sets_limit: int = 5

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @field_validator("recent_workouts_limit", "exercise_sets_limit")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("limit must not be negative")
        return value


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
