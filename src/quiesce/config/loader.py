"""Locate and read the TOML configuration file."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from .settings import Settings

CONFIG_ENV_VAR = "QUIESCE_CONFIG_FILE"


def config_search_paths() -> List[Path]:
    """Locations tried, in order, when no file is named explicitly."""
    return [
        Path("config.toml"),
        Path("/etc/quiesce/config.toml"),
        Path.home() / ".config" / "quiesce" / "config.toml",
    ]


def find_config_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """Resolve which configuration file to read.

    A path passed in, or named by ``QUIESCE_CONFIG_FILE``, must exist.
    Otherwise the first existing search path wins, and None means no file
    was found.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist
    """
    named = explicit or os.getenv(CONFIG_ENV_VAR)
    if named:
        path = Path(named)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        return path

    return next((path for path in config_search_paths() if path.is_file()), None)


def read_toml(path: Path) -> Dict[str, Any]:
    """Parse ``path`` as TOML.

    Raises:
        ValueError: If the file is not valid TOML; the message names the file
    """
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e


def load_config(config_path: Optional[Path] = None) -> Settings:
    """Build settings from a TOML file and the environment.

    Top-level keys from the file become ``Settings`` init arguments, which
    pydantic-settings ranks above environment variables. Keys the file does
    not set fall back to ``QUIESCE_*`` variables, then to defaults.

    Args:
        config_path: Optional path to the configuration file

    Returns:
        Loaded configuration settings
    """
    path = find_config_file(config_path)
    return Settings(**(read_toml(path) if path is not None else {}))
