"""Syntax checking of step scripts before anything runs."""

import hashlib
import logging
import os
import subprocess
import tempfile

from ..config import Script, Step
from ..errors import ScriptValidationError
from ..system.host import HostContext
from ..system.shell import Shell

CHECK_TIMEOUT = 60

_logging = logging.getLogger(__name__)


def hash_script(shell: Shell, code: str) -> str:
    hasher = hashlib.sha256()
    hasher.update(shell.command.encode())
    hasher.update(code.encode())
    return hasher.hexdigest()


def _require_shell(script: Script) -> Shell:
    if script.shell is None:
        raise ValueError("script shell must be resolved before checking")
    return script.shell


class ScriptChecker:
    """Checks scripts with their shell's syntax-only mode and remembers successes.

    Scripts are identified by a hash of the shell binary and the code, so the
    same script used by several steps is only checked once.
    """

    def __init__(self, host: HostContext):
        self.host = host
        self._checked: set[str] = set()

    def is_checked(self, script: Script) -> bool:
        return hash_script(_require_shell(script), script.code) in self._checked

    def check_script(self, script: Script, skip_if_shell_unavailable: bool = False) -> None:
        """Check ``script`` without running it.

        Args:
            script: Script with a resolved shell
            skip_if_shell_unavailable: Return silently when the shell is missing
                instead of failing

        Raises:
            ScriptValidationError: On a syntax error or if the shell cannot run
        """
        shell = _require_shell(script)
        if skip_if_shell_unavailable and not self.host.is_shell_available(shell):
            _logging.debug(f"Skipping check, {shell.command} is not available")
            return

        key = hash_script(shell, script.code)
        if key in self._checked:
            return

        with tempfile.NamedTemporaryFile(
            "w", suffix=shell.file_suffix, delete=False, encoding="utf-8"
        ) as f:
            f.write(script.code)
            path = f.name

        try:
            result = subprocess.run(
                shell.check_args(path),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=CHECK_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ScriptValidationError(f"Failed to run shell: {shell.command}: {e}") from e
        finally:
            os.unlink(path)

        if result.returncode != 0:
            stderr = result.stderr.replace(f"{path}:", "").strip()
            raise ScriptValidationError(f"{shell.command} syntax error: {stderr}")

        self._checked.add(key)


def check_scripts(
    steps: list[Step], checker: ScriptChecker, skip_if_shell_unavailable: bool
) -> None:
    """Check every script of ``steps`` and name the step in any failure."""
    for step in steps:
        for kind, script in step.scripts():
            try:
                checker.check_script(script, skip_if_shell_unavailable)
            except ScriptValidationError as e:
                raise ScriptValidationError(
                    f"Failed to check {kind} in {step.source_file}, step '{step.id}': {e}"
                ) from e


__all__ = ["ScriptChecker", "check_scripts", "hash_script", "CHECK_TIMEOUT"]
