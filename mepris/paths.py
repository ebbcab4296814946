"""Configuration and data path helpers for mepris."""

import os
from pathlib import Path

APP_NAME = "mepris"
ALIASES_FILE_NAME = "pkg_aliases.yaml"
STATE_FILE_NAME = "state.json"


def get_config_dir() -> Path:
    """Return XDG-compliant config directory: ~/.config/mepris"""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_NAME


def get_data_dir() -> Path:
    """Return XDG-compliant data directory: ~/.local/share/mepris"""
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / APP_NAME


def get_global_aliases_path() -> Path:
    """Return path to the global package aliases file.

    Priority:
    1. GLOBAL_ALIASES_PATH environment variable (if set and the file exists)
    2. ~/.config/mepris/pkg_aliases.yaml

    The returned file may not exist.
    """
    custom = os.environ.get("GLOBAL_ALIASES_PATH")
    if custom:
        custom_path = Path(custom)
        if custom_path.exists():
            return custom_path
    return get_config_dir() / ALIASES_FILE_NAME


def get_local_aliases_path(document_dir: Path) -> Path:
    """Return path to the aliases file that sits next to a document."""
    return document_dir / ALIASES_FILE_NAME


def get_state_path(create: bool = False) -> Path:
    """Return path to the run state file.

    Priority:
    1. STATE_PATH environment variable (if set)
    2. ~/.local/share/mepris/state.json

    Args:
        create: If True, create the parent directory if missing

    Returns:
        Path to state file
    """
    if "STATE_PATH" in os.environ:
        state_path = Path(os.environ["STATE_PATH"])
    else:
        state_path = get_data_dir() / STATE_FILE_NAME

    if create:
        state_path.parent.mkdir(parents=True, exist_ok=True)
    return state_path
