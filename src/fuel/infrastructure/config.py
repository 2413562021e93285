"""Configuration management with hierarchical loading."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from fuel.domain.models import TaskComplexity, TaskType

FUEL_DIR_NAME = ".fuel"


class TaskDefaultsConfig(BaseModel):
    """Defaults applied to newly created tasks."""

    default_priority: int = Field(default=2, ge=0, le=4)
    default_type: TaskType = TaskType.TASK
    default_complexity: TaskComplexity = TaskComplexity.SIMPLE


class StorageConfig(BaseModel):
    """SQLite storage configuration."""

    database_filename: str = "fuel.db"
    # Lock acquisition timeout for concurrent writers
    busy_timeout_ms: int = Field(default=5000, ge=0)


class RunConfig(BaseModel):
    """Run history configuration."""

    output_max_bytes: int = Field(default=10240, ge=0)


class IdConfig(BaseModel):
    """Identifier generation configuration."""

    hash_length: int = Field(default=6, ge=4, le=32)


class Config(BaseModel):
    """Main configuration model."""

    version: str = "0.1.0"
    # Console logging shares the terminal with command output
    log_level: str = "WARNING"
    tasks: TaskDefaultsConfig = Field(default_factory=TaskDefaultsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    runs: RunConfig = Field(default_factory=RunConfig)
    ids: IdConfig = Field(default_factory=IdConfig)


class ConfigManager:
    """Manage configuration loading from multiple sources with hierarchy."""

    def __init__(self, project_root: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            project_root: Root directory of the project (default: current directory)
        """
        self.project_root = project_root or Path.cwd()
        self._config: Config | None = None

    def load_config(self) -> Config:
        """Load configuration from all sources in hierarchy order.

        Configuration hierarchy (highest priority last):
        1. System defaults (embedded in Config model)
        2. Project defaults (.fuel/config.yaml)
        3. User overrides (~/.fuel/config.yaml)
        4. Project-local overrides (.fuel/local.yaml)
        5. Environment variables (FUEL_* prefix)

        Returns:
            Merged configuration
        """
        if self._config is not None:
            return self._config

        config_dict: dict[str, Any] = {}

        project_config_path = self.project_root / FUEL_DIR_NAME / "config.yaml"
        if project_config_path.exists():
            config_dict = self._merge_dicts(config_dict, self._load_yaml(project_config_path))

        user_config_path = Path.home() / FUEL_DIR_NAME / "config.yaml"
        if user_config_path.exists():
            config_dict = self._merge_dicts(config_dict, self._load_yaml(user_config_path))

        local_config_path = self.project_root / FUEL_DIR_NAME / "local.yaml"
        if local_config_path.exists():
            config_dict = self._merge_dicts(config_dict, self._load_yaml(local_config_path))

        config_dict = self._apply_env_vars(config_dict)

        # Runs before setup_logging, so it must not log
        self._config = Config(**config_dict)
        return self._config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML configuration file."""
        with open(path) as f:
            return yaml.safe_load(f) or {}

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_vars(self, config_dict: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variables with FUEL_ prefix."""
        env_mappings = {
            "FUEL_LOG_LEVEL": ["log_level"],
            "FUEL_DEFAULT_PRIORITY": ["tasks", "default_priority"],
            "FUEL_BUSY_TIMEOUT_MS": ["storage", "busy_timeout_ms"],
            "FUEL_RUN_OUTPUT_MAX_BYTES": ["runs", "output_max_bytes"],
        }

        for env_var, path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                current = config_dict
                for key in path[:-1]:
                    if key not in current:
                        current[key] = {}
                    current = current[key]
                try:
                    current[path[-1]] = int(value)
                except ValueError:
                    current[path[-1]] = value

        return config_dict

    def get_fuel_dir(self) -> Path:
        """Get path to the project's .fuel directory."""
        fuel_dir = self.project_root / FUEL_DIR_NAME
        fuel_dir.mkdir(exist_ok=True)
        return fuel_dir

    def get_database_path(self) -> Path:
        """Get path to SQLite database."""
        return self.get_fuel_dir() / self.load_config().storage.database_filename

    def get_log_dir(self) -> Path:
        """Get path to log directory."""
        log_dir = self.project_root / FUEL_DIR_NAME / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
