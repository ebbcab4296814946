"""Data models for planning and running steps."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


@dataclass
class RunState:
    last_step_id: str | None
    interactive: bool = False


class StateSaver(Protocol):
    def save(self, state: RunState) -> None: ...


class Outcome(Enum):
    WOULD_RUN = "would_run"
    SKIPPED_BY_GUARD = "skipped_by_guard"
    EXCLUDED_BY_TAG = "excluded_by_tag"
    EXCLUDED_BY_OS = "excluded_by_os"
    SKIPPED_BY_RESUME = "skipped_by_resume"


@dataclass
class PackageManagerInfo:
    name: str
    installed: bool


@dataclass
class PackageInfo:
    name: str
    original: str
    use_alias: bool
    installed: bool = False

    def __str__(self) -> str:
        if self.use_alias:
            return f"{self.name} (using alias)"
        return self.name


@dataclass
class StepOutcome:
    step_id: str
    outcome: Outcome
    package_manager: PackageManagerInfo | None = None
    packages: list[PackageInfo] = field(default_factory=list)
    missing_shells: list[str] = field(default_factory=list)


@dataclass
class RunPlan:
    outcomes: list[StepOutcome] = field(default_factory=list)

    def ids(self, outcome: Outcome) -> list[str]:
        return [o.step_id for o in self.outcomes if o.outcome == outcome]

    @property
    def would_run(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.outcome == Outcome.WOULD_RUN]


@dataclass
class RunReport:
    completed: list[str] = field(default_factory=list)
    skipped_by_guard: list[str] = field(default_factory=list)
    skipped_by_user: list[str] = field(default_factory=list)
    aborted: bool = False


__all__ = [
    "RunState",
    "StateSaver",
    "Outcome",
    "PackageManagerInfo",
    "PackageInfo",
    "StepOutcome",
    "RunPlan",
    "RunReport",
]
