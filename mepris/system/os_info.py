"""Host platform and distribution identity."""

import platform as _platform
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

OS_RELEASE_PATH = Path("/etc/os-release")


class Platform(Enum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    @classmethod
    def detect(cls) -> "Platform":
        system = _platform.system().lower()
        if system == "linux":
            return cls.LINUX
        if system == "darwin":
            return cls.MACOS
        if system == "windows":
            return cls.WINDOWS
        raise RuntimeError(f"Unsupported platform: {_platform.system()}")


@dataclass(frozen=True)
class OsInfo:
    platform: Platform
    id: str | None = None
    id_like: tuple[str, ...] = field(default_factory=tuple)


def parse_os_release(text: str) -> dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


def detect_os_info(
    os_release_path: Path = OS_RELEASE_PATH, platform: Platform | None = None
) -> OsInfo:
    """Read identity facts for the current host.

    Only Linux hosts have a distribution id; other platforms, and Linux
    hosts without an os-release file, report their platform name alone.
    """
    platform = platform or Platform.detect()
    if platform != Platform.LINUX or not os_release_path.is_file():
        return OsInfo(platform=platform)

    values = parse_os_release(os_release_path.read_text(encoding="utf-8"))
    id_like = tuple(values.get("ID_LIKE", "").split())
    return OsInfo(platform=platform, id=values.get("ID"), id_like=id_like)


__all__ = ["Platform", "OsInfo", "parse_os_release", "detect_os_info"]
