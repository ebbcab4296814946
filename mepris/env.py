"""Environment variables required by steps.

A ``.env`` file next to the entry document is loaded into the process
environment before any step is selected. Its values override variables that
are already set.
"""

import logging
import os
import re
from pathlib import Path

from .config import Step
from .errors import EnvironmentSetupError

_logging = logging.getLogger(__name__)

ENV_FILE_NAME = ".env"

_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file into a key/value dict.

    Handles:
    - KEY=value
    - KEY="value"
    - KEY='value'
    - export KEY=value
    - Comments (#)
    - Empty lines

    Raises:
        EnvironmentSetupError: If the file cannot be read, a line has no '='
            or a key is not a valid variable name
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise EnvironmentSetupError(f"Failed to load .env file: {e}") from e

    result: dict[str, str] = {}
    for lineno, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[7:].strip()

        if "=" not in line:
            raise EnvironmentSetupError(
                f"Failed to load .env file: {path}:{lineno}: expected KEY=value"
            )

        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if not _KEY_PATTERN.match(key):
            raise EnvironmentSetupError(
                f"Failed to load .env file: {path}:{lineno}: invalid variable name '{key}'"
            )

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]

        result[key] = value

    return result


def load_env(document_path: str | Path) -> None:
    """Load the ``.env`` next to ``document_path`` if there is one."""
    env_path = Path(document_path).resolve().parent / ENV_FILE_NAME
    if not env_path.is_file():
        return

    values = parse_env_file(env_path)
    _logging.debug(f"Loaded {len(values)} variable(s) from {env_path}")
    os.environ.update(values)


def check_env(steps: list[Step]) -> None:
    """Ensure every variable declared by ``steps`` is set.

    Raises:
        EnvironmentSetupError: Listing each missing variable with the steps
            that require it
    """
    missing: dict[str, list[str]] = {}
    for step in steps:
        for name in step.env:
            if name not in os.environ:
                missing.setdefault(name, []).append(step.id)

    if missing:
        lines = ["Undefined environment variables:"]
        for name, step_ids in missing.items():
            lines.append(f"{name} (required by steps {', '.join(step_ids)})")
        raise EnvironmentSetupError("\n".join(lines))


__all__ = ["ENV_FILE_NAME", "parse_env_file", "load_env", "check_env"]
