"""Host detection: platform identity, shells and package managers."""

from .host import HostContext, detect_host
from .os_info import OsInfo, Platform, detect_os_info, parse_os_release
from .pkg import (
    PackageManager,
    PackageSource,
    Repository,
    detect_default_package_manager,
    parse_package_manager,
    parse_package_source,
    repository_for,
    source_name,
    source_package_managers,
)
from .shell import Shell, parse_shell

__all__ = [
    "HostContext",
    "detect_host",
    "OsInfo",
    "Platform",
    "detect_os_info",
    "parse_os_release",
    "PackageManager",
    "PackageSource",
    "Repository",
    "detect_default_package_manager",
    "parse_package_manager",
    "parse_package_source",
    "repository_for",
    "source_name",
    "source_package_managers",
    "Shell",
    "parse_shell",
]
