"""Pytest fixtures and utilities for mepris tests."""

import shutil
import tempfile
import textwrap
from pathlib import Path
from typing import Callable, Generator

import pytest

from mepris.config import Step
from mepris.system import HostContext, OsInfo, PackageManager, Platform, Shell

requires_bash = pytest.mark.skipif(
    shutil.which("bash") is None, reason="bash is not installed"
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def isolated_paths(temp_dir: Path, monkeypatch) -> Path:
    """Point config and data directories into the temp dir."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(temp_dir / ".local" / "share"))
    monkeypatch.delenv("STATE_PATH", raising=False)
    monkeypatch.delenv("GLOBAL_ALIASES_PATH", raising=False)
    return temp_dir


@pytest.fixture
def state_path(temp_dir: Path, monkeypatch) -> Path:
    path = temp_dir / "state" / "state.json"
    monkeypatch.setenv("STATE_PATH", str(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def make_which(*binaries: str) -> Callable[[str], str | None]:
    """Fake ``which`` that only knows ``binaries``."""
    known = set(binaries)
    return lambda name: f"/usr/bin/{name}" if name in known else None


@pytest.fixture
def ubuntu_info() -> OsInfo:
    return OsInfo(platform=Platform.LINUX, id="ubuntu", id_like=("debian",))


@pytest.fixture
def host(ubuntu_info: OsInfo) -> HostContext:
    """Ubuntu host with bash and apt."""
    return HostContext(
        os_info=ubuntu_info,
        which=make_which("bash", "apt-get"),
        shells=frozenset({Shell.BASH}),
        package_manager=PackageManager.APT,
    )


@pytest.fixture
def write_doc(temp_dir: Path) -> Callable[..., Path]:
    """Write a YAML document (dedented) under the temp dir and return its path."""

    def _write(content: str, name: str = "steps.yaml") -> Path:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content))
        return path

    return _write


def make_step(step_id: str, **kwargs) -> Step:
    """Build a Step with tuple fields from plain lists."""
    for name in ("tags", "env", "packages"):
        if name in kwargs:
            kwargs[name] = tuple(kwargs[name])
    kwargs.setdefault("source_file", "/docs/steps.yaml")
    return Step(id=step_id, **kwargs)
