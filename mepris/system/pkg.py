"""Package managers, repositories and their command tables."""

import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from .os_info import Platform

DETECT_TIMEOUT = 30


class PackageManager(Enum):
    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    ZYPPER = "zypper"
    YAY = "yay"
    PARU = "paru"
    FLATPAK = "flatpak"
    BREW = "brew"
    SCOOP = "scoop"
    CHOCO = "choco"
    WINGET = "winget"
    CARGO = "cargo"
    NPM = "npm"

    @property
    def command(self) -> str:
        """Binary looked up on PATH to decide whether the manager is present."""
        return _MANAGER_COMMANDS[self].command

    def install_commands(self, packages: list[str]) -> list[list[str]]:
        return _MANAGER_COMMANDS[self].install(packages)

    def is_installed(self, package: str) -> bool:
        """Best-effort check whether ``package`` is already installed.

        A missing detection binary or a hung command counts as not installed.
        """
        commands = _MANAGER_COMMANDS[self]
        try:
            result = subprocess.run(
                commands.detect(package),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=DETECT_TIMEOUT,
            )
        except (subprocess.TimeoutExpired, OSError):
            return False
        return commands.installed(result, package)


class Repository(Enum):
    AUR = "aur"

    @property
    def package_managers(self) -> list[PackageManager]:
        return list(_REPOSITORY_MANAGERS[self])


PackageSource = Union[PackageManager, Repository]

_REPOSITORY_MANAGERS = {
    Repository.AUR: (PackageManager.YAY, PackageManager.PARU),
}


def source_package_managers(source: PackageSource) -> list[PackageManager]:
    """Ordered candidate managers for a package source."""
    if isinstance(source, Repository):
        return source.package_managers
    return [source]


def source_name(source: PackageSource) -> str:
    return source.value


def repository_for(manager: PackageManager) -> Repository | None:
    """Return the repository a manager serves, if any (yay -> aur)."""
    for repo, managers in _REPOSITORY_MANAGERS.items():
        if manager in managers:
            return repo
    return None


def valid_source_names() -> list[str]:
    names = [pm.value for pm in PackageManager if repository_for(pm) is None]
    names.extend(repo.value for repo in Repository)
    return names


def parse_package_source(value: str) -> PackageSource:
    """Convert a document value to a package source.

    Managers that only serve a repository (yay, paru) are not accepted on
    their own; the repository name must be used instead.

    Raises:
        ValueError: If value is not a known source
    """
    normalized = value.strip().lower()
    for repo in Repository:
        if repo.value == normalized:
            return repo
    for manager in PackageManager:
        if manager.value == normalized and repository_for(manager) is None:
            return manager
    raise ValueError(
        f"unknown package_source '{normalized}', "
        f"expected one of [{', '.join(valid_source_names())}]"
    )


def parse_package_manager(value: str) -> PackageManager:
    """Convert a document value to a package manager.

    Raises:
        ValueError: If value is not a known manager
    """
    try:
        return PackageManager(value.strip().lower())
    except ValueError as e:
        valid = [pm.value for pm in PackageManager]
        raise ValueError(
            f"Invalid package manager '{value}'. Must be one of: {', '.join(valid)}"
        ) from e


@dataclass(frozen=True)
class _ManagerCommands:
    command: str
    install: Callable[[list[str]], list[list[str]]]
    detect: Callable[[str], list[str]]
    installed: Callable[[subprocess.CompletedProcess, str], bool]


def _batch(*prefix: str) -> Callable[[list[str]], list[list[str]]]:
    return lambda packages: [[*prefix, *packages]]


def _each(*prefix: str) -> Callable[[list[str]], list[list[str]]]:
    return lambda packages: [[*prefix, package] for package in packages]


def _succeeded(result: subprocess.CompletedProcess, package: str) -> bool:
    return result.returncode == 0


def _mentions(result: subprocess.CompletedProcess, package: str) -> bool:
    return package in result.stdout


def _dpkg_installed(result: subprocess.CompletedProcess, package: str) -> bool:
    return result.returncode == 0 and any(
        line.startswith("ii") for line in result.stdout.splitlines()
    )


def _scoop_installed(result: subprocess.CompletedProcess, package: str) -> bool:
    # First line is a header; scoop matches substrings so compare the name column.
    names = [line.split()[0] for line in result.stdout.splitlines()[1:] if line.split()]
    return package in names


def _pacman_query(package: str) -> list[str]:
    return ["pacman", "-Q", package]


_MANAGER_COMMANDS = {
    PackageManager.APT: _ManagerCommands(
        "apt-get",
        _batch("sudo", "apt-get", "install", "-y"),
        lambda package: ["dpkg", "-l", package],
        _dpkg_installed,
    ),
    PackageManager.DNF: _ManagerCommands(
        "dnf",
        _batch("sudo", "dnf", "install", "-y"),
        lambda package: ["rpm", "-q", package],
        _succeeded,
    ),
    PackageManager.PACMAN: _ManagerCommands(
        "pacman",
        _batch("sudo", "pacman", "-S", "--noconfirm", "--needed"),
        _pacman_query,
        _succeeded,
    ),
    PackageManager.ZYPPER: _ManagerCommands(
        "zypper",
        _batch("sudo", "zypper", "install", "-y"),
        lambda package: ["rpm", "-q", package],
        _succeeded,
    ),
    PackageManager.YAY: _ManagerCommands(
        "yay",
        _batch("yay", "-S", "--noconfirm", "--needed"),
        _pacman_query,
        _succeeded,
    ),
    PackageManager.PARU: _ManagerCommands(
        "paru",
        _batch("paru", "-S", "--noconfirm", "--needed"),
        _pacman_query,
        _succeeded,
    ),
    PackageManager.FLATPAK: _ManagerCommands(
        "flatpak",
        _each("flatpak", "install", "-y", "flathub"),
        lambda package: ["flatpak", "info", package],
        _succeeded,
    ),
    PackageManager.BREW: _ManagerCommands(
        "brew",
        _batch("brew", "install"),
        lambda package: ["brew", "list", "--versions", package],
        _mentions,
    ),
    PackageManager.SCOOP: _ManagerCommands(
        "scoop",
        _batch("scoop.cmd", "install"),
        lambda package: ["scoop.cmd", "list", package],
        _scoop_installed,
    ),
    PackageManager.CHOCO: _ManagerCommands(
        "choco",
        _batch("choco", "install", "-y"),
        lambda package: ["choco", "list", "--local-only", package],
        _mentions,
    ),
    PackageManager.WINGET: _ManagerCommands(
        "winget",
        _each("winget", "install", "-e", "--id"),
        lambda package: ["winget", "list", "--id", package],
        _mentions,
    ),
    PackageManager.CARGO: _ManagerCommands(
        "cargo",
        _batch("cargo", "install"),
        lambda package: ["cargo", "install", "--list"],
        _mentions,
    ),
    PackageManager.NPM: _ManagerCommands(
        "npm",
        _batch("npm", "i", "-g"),
        lambda package: ["npm", "list", "--depth=0", "-g", package],
        _succeeded,
    ),
}

# Linux candidates in priority order
LINUX_DEFAULT_MANAGERS = [
    PackageManager.PACMAN,
    PackageManager.APT,
    PackageManager.DNF,
    PackageManager.ZYPPER,
]


def detect_default_package_manager(
    platform: Platform, which: Callable[[str], str | None]
) -> PackageManager | None:
    """Pick the package manager used when a step does not name one.

    Returns:
        The manager, or None if no candidate is installed on Linux
    """
    if platform == Platform.MACOS:
        return PackageManager.BREW
    if platform == Platform.WINDOWS:
        return PackageManager.WINGET

    for manager in LINUX_DEFAULT_MANAGERS:
        if which(manager.command) is not None:
            return manager
    return None


__all__ = [
    "PackageManager",
    "Repository",
    "PackageSource",
    "source_package_managers",
    "source_name",
    "repository_for",
    "valid_source_names",
    "parse_package_source",
    "parse_package_manager",
    "detect_default_package_manager",
    "LINUX_DEFAULT_MANAGERS",
]
