"""Declarative, cross-platform machine provisioning."""

import logging
import sys

from .errors import (
    ConfigError,
    EnvironmentSetupError,
    ExecutionError,
    ExpressionError,
    MeprisError,
    PackageManagerError,
    ScriptValidationError,
    SelectionError,
    StateError,
    format_error,
)

__version__ = "0.1.0"

_logging_configured = False


def setup_logging(debug: bool) -> None:
    """Configure the root logger once: DEBUG with --debug, WARNING otherwise."""
    global _logging_configured
    level = logging.DEBUG if debug else logging.WARNING
    if _logging_configured:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    _logging_configured = True


__all__ = [
    "__version__",
    "setup_logging",
    "MeprisError",
    "ConfigError",
    "SelectionError",
    "ExpressionError",
    "EnvironmentSetupError",
    "ScriptValidationError",
    "ExecutionError",
    "PackageManagerError",
    "StateError",
    "format_error",
]
