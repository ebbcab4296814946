"""Facts about the machine a run executes on.

A ``HostContext`` is built once per command and passed explicitly to the
filter pipeline, resolver, script checker and runner. Tests construct one
directly with fixed facts instead of detecting them.
"""

import logging
import shutil
from dataclasses import dataclass, field
from typing import Callable

from ..errors import PackageManagerError
from .os_info import OsInfo, detect_os_info
from .pkg import PackageManager, detect_default_package_manager
from .shell import Shell

_logging = logging.getLogger(__name__)


@dataclass
class HostContext:
    """Host facts with lazily detected package manager.

    Attributes:
        os_info: Platform and distribution identity
        which: Lookup for binaries on PATH (``shutil.which`` by default)
        shells: Explicit set of available shells; detected with ``which`` if None
        package_manager: Explicit default package manager; detected if None
    """

    os_info: OsInfo
    which: Callable[[str], str | None] = shutil.which
    shells: frozenset[Shell] | None = None
    package_manager: PackageManager | None = None
    _detection_error: PackageManagerError | None = field(
        default=None, init=False, repr=False
    )

    @property
    def platform(self):
        return self.os_info.platform

    def is_shell_available(self, shell: Shell) -> bool:
        if self.shells is None:
            self.shells = frozenset(s for s in Shell if self.which(s.command))
            _logging.debug(f"Available shells: {sorted(s.value for s in self.shells)}")
        return shell in self.shells

    def is_binary_available(self, binary: str) -> bool:
        return self.which(binary) is not None

    def default_package_manager(self) -> PackageManager:
        """Return the package manager used when a step does not pick one.

        Detection happens on first call. A failure is remembered and raised
        again on later calls.

        Raises:
            PackageManagerError: If no package manager is found on this host
        """
        if self.package_manager is not None:
            return self.package_manager
        if self._detection_error is not None:
            raise self._detection_error

        manager = detect_default_package_manager(self.platform, self.which)
        if manager is None:
            self._detection_error = PackageManagerError(
                "Could not detect package manager"
            )
            raise self._detection_error

        _logging.debug(f"Default package manager: {manager.value}")
        self.package_manager = manager
        return manager


def detect_host() -> HostContext:
    """Build a HostContext for the machine we are running on."""
    return HostContext(os_info=detect_os_info())


__all__ = ["HostContext", "detect_host"]
