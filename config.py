import logging
import os
import yaml

from settings_schema import SettingsSchema, validate_settings

APP_VERSION = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class YamlConfig:
    """Load and save settings to a YAML file with environment overrides."""

    ENV_OVERRIDES = {
        "FITNESS_DB_PATH": "db_path",
        "FITNESS_STORAGE": "storage",
        "FITNESS_LOG_LEVEL": "log_level",
    }

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            data = {}
        else:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        for env, key in self.ENV_OVERRIDES.items():
            value = os.environ.get(env)
            if value:
                data[key] = value
        return data

    def save(self, data: dict) -> None:
        validate_settings(data)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)

    def settings(self) -> SettingsSchema:
        data = self.load()
        validate_settings(data)
        return SettingsSchema(**data)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
