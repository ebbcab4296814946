"""Shared utility functions for commands."""

import sys
from contextlib import contextmanager

import click

from mepris.errors import (
    ConfigError,
    EnvironmentSetupError,
    ExecutionError,
    MeprisError,
    ScriptValidationError,
    SelectionError,
    StateError,
    format_error,
)
from mepris.system import HostContext, detect_host

EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_SELECTION_ERROR = 3
EXIT_ENV_ERROR = 4
EXIT_VALIDATION_ERROR = 5
EXIT_EXECUTION_ERROR = 6
EXIT_STATE_ERROR = 7

# Checked in order; subclasses come before their bases
_EXIT_CODES = [
    (ConfigError, EXIT_CONFIG_ERROR),
    (SelectionError, EXIT_SELECTION_ERROR),
    (EnvironmentSetupError, EXIT_ENV_ERROR),
    (ScriptValidationError, EXIT_VALIDATION_ERROR),
    (ExecutionError, EXIT_EXECUTION_ERROR),
    (StateError, EXIT_STATE_ERROR),
]


def exit_code_for(error: MeprisError) -> int:
    """Map an error to the process exit code of its category.

    >>> exit_code_for(StateError("no state"))
    7
    """
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return EXIT_ERROR


@contextmanager
def handle_errors():
    """Print MeprisError as 'Error: ...' on stderr and exit with its code."""
    try:
        yield
    except MeprisError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(exit_code_for(e))


def get_host(ctx: click.Context) -> HostContext:
    """Host injected through ``ctx.obj['host']``, or the detected one."""
    host = ctx.obj.get("host") if ctx.obj else None
    if host is None:
        host = detect_host()
        ctx.obj["host"] = host
    return host
