"""Package manager resolution and package installation for steps."""

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import IO

from ..aliases import PackageAliases
from ..config import Step, resolve_shell
from ..errors import ExecutionError, PackageManagerError
from ..execution import stream_command
from ..system.host import HostContext
from ..system.os_info import Platform
from ..system.pkg import PackageManager, source_package_managers

_logging = logging.getLogger(__name__)


def resolve_package_manager(step: Step, host: HostContext) -> PackageManager:
    """Pick the package manager for a step.

    Order:
    1. The step's package source: first candidate found on PATH, else the
       first candidate
    2. On Windows, the default Windows package manager from document defaults
    3. The host's default package manager

    Raises:
        PackageManagerError: If the host default is needed and undetectable
    """
    if step.package_source is not None:
        candidates = source_package_managers(step.package_source)
        for manager in candidates:
            if host.is_binary_available(manager.command):
                return manager
        return candidates[0]

    if (
        host.platform == Platform.WINDOWS
        and step.defaults.windows_package_manager is not None
    ):
        return step.defaults.windows_package_manager

    return host.default_package_manager()


def resolve_shells(step: Step, host: HostContext) -> Step:
    """Return a copy of ``step`` whose scripts all name their shell."""
    changes = {}
    for name in ("when_script", "pre_script", "script"):
        script = getattr(step, name)
        if script is not None:
            changes[name] = dataclasses.replace(
                script, shell=resolve_shell(script, step, host.platform)
            )
    return dataclasses.replace(step, **changes)


def resolve_packages(step: Step, host: HostContext, aliases: PackageAliases) -> Step:
    """Return a copy of ``step`` with its package manager and package names resolved.

    Called when the step's turn comes, so managers installed by earlier steps
    are found. Aliases are applied after the manager is known so the right
    source key is used.

    Raises:
        PackageManagerError: If the step needs the host default and none is found
    """
    if not step.packages:
        return step
    try:
        manager = resolve_package_manager(step, host)
    except PackageManagerError as e:
        raise PackageManagerError(
            f"Failed to choose a package manager for step '{step.id}' "
            f"in file {step.source_file}: {e}",
            step_id=step.id,
            source_file=step.source_file,
        ) from e
    return dataclasses.replace(
        step,
        package_manager=manager,
        packages=tuple(aliases.resolve_names(step.packages, manager)),
    )


def resolve_step(step: Step, host: HostContext, aliases: PackageAliases) -> Step:
    """Resolve shells, package manager and package names in one go."""
    return resolve_packages(resolve_shells(step, host), host, aliases)


def is_package_installed(manager: PackageManager, name: str) -> bool:
    return manager.is_installed(name)


def install_packages(step: Step, host: HostContext, out: IO[str], log=None) -> None:
    """Install a resolved step's packages with its package manager.

    Raises:
        ExecutionError: If the manager is missing or an install command fails
    """
    manager = step.package_manager
    if manager is None or not step.packages:
        return

    context = dict(step_id=step.id, source_file=step.source_file, tool=manager.command)
    packages = list(step.packages)

    if not host.is_binary_available(manager.command):
        raise ExecutionError(f"Package manager {manager.command} not found", **context)

    if log is not None:
        log(f"📦 PROGRESS Installing packages: {', '.join(packages)}")

    cwd = str(Path(step.source_file).parent) if step.source_file else None
    for argv in manager.install_commands(packages):
        try:
            code = stream_command(argv, cwd, out, stdin=asyncio.subprocess.DEVNULL)
        except OSError as e:
            raise ExecutionError(
                f"Failed to install {', '.join(packages)}: {e}", **context
            ) from e
        if code != 0:
            raise ExecutionError(
                f"Failed to install {', '.join(packages)} "
                f"({manager.command} exited with {code})",
                **context,
            )


__all__ = [
    "resolve_package_manager",
    "resolve_shells",
    "resolve_packages",
    "resolve_step",
    "is_package_installed",
    "install_packages",
]
