"""Step document model: scripts, inherited defaults and steps."""

from dataclasses import dataclass, field

from .errors import ConfigError
from .expr import Expr
from .system.os_info import Platform
from .system.pkg import PackageManager, PackageSource
from .system.shell import Shell

DEFAULT_SHELLS = {
    Platform.LINUX: Shell.BASH,
    Platform.MACOS: Shell.BASH,
    Platform.WINDOWS: Shell.POWERSHELL,
}


@dataclass(frozen=True)
class Script:
    """A script body and the shell that runs it (None until resolved)."""
    code: str
    shell: Shell | None = None

    def __post_init__(self):
        if not isinstance(self.code, str):
            raise ValueError("script code must be a string")


@dataclass(frozen=True)
class Defaults:
    """Settings a document passes down to its steps and included documents."""
    windows_package_manager: PackageManager | None = None
    windows_shell: Shell | None = None
    linux_shell: Shell | None = None
    macos_shell: Shell | None = None

    @classmethod
    def merge(
        cls, inherited: "Defaults | None", overrides: "Defaults | None"
    ) -> "Defaults":
        """Merge field by field; values set in ``overrides`` win."""
        inherited = inherited or cls()
        overrides = overrides or cls()
        return cls(
            windows_package_manager=overrides.windows_package_manager
            or inherited.windows_package_manager,
            windows_shell=overrides.windows_shell or inherited.windows_shell,
            linux_shell=overrides.linux_shell or inherited.linux_shell,
            macos_shell=overrides.macos_shell or inherited.macos_shell,
        )

    def shell_for(self, platform: Platform) -> Shell | None:
        if platform == Platform.WINDOWS:
            return self.windows_shell
        if platform == Platform.MACOS:
            return self.macos_shell
        return self.linux_shell


@dataclass(frozen=True)
class Step:
    """One unit of provisioning work.

    Steps are never modified after loading. The runner works on resolved
    copies where script shells, ``package_manager`` and alias-expanded
    ``packages`` are filled in.
    """
    id: str
    tags: tuple[str, ...] = ()
    os: Expr | None = None
    env: tuple[str, ...] = ()
    when_script: Script | None = None
    pre_script: Script | None = None
    script: Script | None = None
    package_source: PackageSource | None = None
    packages: tuple[str, ...] = ()
    source_file: str = ""
    defaults: Defaults = field(default_factory=Defaults)
    package_manager: PackageManager | None = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("id must be a non-empty string")
        for name in ("tags", "env", "packages"):
            if not isinstance(getattr(self, name), tuple):
                raise ValueError(f"{name} must be a tuple")

    def scripts(self) -> list[tuple[str, Script]]:
        """Return (kind, script) pairs for every script the step defines."""
        pairs = [
            ("when-script", self.when_script),
            ("pre-script", self.pre_script),
            ("script", self.script),
        ]
        return [(kind, script) for kind, script in pairs if script is not None]

    def used_shells(self) -> list[Shell]:
        """Shells referenced by the step's scripts, without duplicates."""
        shells = []
        for _, script in self.scripts():
            if script.shell is not None and script.shell not in shells:
                shells.append(script.shell)
        return shells


def resolve_shell(script: Script, step: Step, platform: Platform) -> Shell:
    """Pick the shell for a script: explicit, then step default, then platform."""
    if script.shell is not None:
        return script.shell
    return step.defaults.shell_for(platform) or DEFAULT_SHELLS[platform]


def check_unique_ids(steps: list[Step]) -> None:
    """Ensure no two steps share an id.

    Raises:
        ConfigError: On the first duplicate, naming the file(s) involved
    """
    seen: dict[str, Step] = {}
    for step in steps:
        duplicate = seen.get(step.id)
        if duplicate is None:
            seen[step.id] = step
            continue

        if step.source_file == duplicate.source_file:
            raise ConfigError(
                f"Duplicate step '{step.id}' in file '{_file_name(step.source_file)}'"
            )
        raise ConfigError(
            f"Duplicate step '{step.id}' in files "
            f"'{_file_name(step.source_file)}' and '{_file_name(duplicate.source_file)}'"
        )


def _file_name(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1] or path


__all__ = [
    "Script",
    "Defaults",
    "Step",
    "DEFAULT_SHELLS",
    "resolve_shell",
    "check_unique_ids",
]
