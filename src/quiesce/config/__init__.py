"""Configuration for the quiesce service."""

from .loader import find_config_file, load_config
from .settings import APIConfig, HistoryConfig, Settings, ShutdownConfig, WorkerConfig

__all__ = [
    "find_config_file",
    "load_config",
    "Settings",
    "ShutdownConfig",
    "WorkerConfig",
    "APIConfig",
    "HistoryConfig",
]
