"""Shells that can run step scripts."""

from dataclasses import dataclass
from enum import Enum


class Shell(Enum):
    BASH = "bash"
    PWSH = "pwsh"
    POWERSHELL = "powershell"

    @property
    def command(self) -> str:
        return _SHELL_COMMANDS[self].command

    def run_args(self, code: str) -> list[str]:
        """Arguments that execute ``code`` with this shell."""
        return [self.command, *_SHELL_COMMANDS[self].run_flags, code]

    def check_args(self, script_path: str) -> list[str]:
        """Arguments that syntax-check ``script_path`` without running it."""
        commands = _SHELL_COMMANDS[self]
        if self is Shell.BASH:
            return [commands.command, "-n", script_path]
        ps_command = f"[scriptblock]::Create((Get-Content -Raw '{script_path}'))"
        return [commands.command, "-NoProfile", "-Command", ps_command]

    @property
    def file_suffix(self) -> str:
        return _SHELL_COMMANDS[self].suffix


@dataclass(frozen=True)
class _ShellCommands:
    command: str
    run_flags: tuple[str, ...]
    suffix: str


_SHELL_COMMANDS = {
    Shell.BASH: _ShellCommands("bash", ("-c",), ".sh"),
    Shell.PWSH: _ShellCommands("pwsh", ("-NoProfile", "-Command"), ".ps1"),
    Shell.POWERSHELL: _ShellCommands("powershell", ("-NoProfile", "-Command"), ".ps1"),
}


def parse_shell(value: str) -> Shell:
    """Convert a document value to a Shell.

    Raises:
        ValueError: If value is not a known shell
    """
    try:
        return Shell(value.lower())
    except ValueError as e:
        valid = [s.value for s in Shell]
        raise ValueError(
            f"Invalid shell '{value}'. Must be one of: {', '.join(valid)}"
        ) from e


__all__ = ["Shell", "parse_shell"]
