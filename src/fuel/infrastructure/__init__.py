"""Infrastructure layer for Fuel."""

from fuel.infrastructure.config import Config, ConfigManager
from fuel.infrastructure.database import Database
from fuel.infrastructure.id_generator import IdGenerator
from fuel.infrastructure.logger import get_logger, setup_logging
from fuel.infrastructure.process_probe import PsutilProcessProbe

__all__ = [
    "Config",
    "ConfigManager",
    "Database",
    "IdGenerator",
    "PsutilProcessProbe",
    "get_logger",
    "setup_logging",
]
