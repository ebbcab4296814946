"""Persisted run state used by the ``resume`` command."""

import json
import logging
from dataclasses import asdict, dataclass, field

from .errors import StateError
from .paths import get_state_path
from .runner.models import RunState

_logging = logging.getLogger(__name__)


@dataclass
class RunInfo:
    """Everything needed to rebuild a run request.

    Attributes:
        file: Absolute path of the entry document
        tags_expr: Tag expression of the run, if any
        steps: Explicit step ids of the run
        interactive: Whether the run was interactive when last saved
        last_step_id: Step the run stopped at; None after a successful run
    """

    file: str
    tags_expr: str | None = None
    steps: list[str] = field(default_factory=list)
    interactive: bool = False
    last_step_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "RunInfo":
        if not isinstance(data, dict):
            raise ValueError("state must be a JSON object")
        if not isinstance(data.get("file"), str):
            raise ValueError("state field 'file' must be a string")
        steps = data.get("steps") or []
        if not isinstance(steps, list) or not all(isinstance(s, str) for s in steps):
            raise ValueError("state field 'steps' must be a list of strings")
        tags_expr = data.get("tags_expr")
        last_step_id = data.get("last_step_id")
        for name, value in (("tags_expr", tags_expr), ("last_step_id", last_step_id)):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"state field '{name}' must be a string or null")
        return cls(
            file=data["file"],
            tags_expr=tags_expr,
            steps=steps,
            interactive=bool(data.get("interactive", False)),
            last_step_id=last_step_id,
        )


def save_state(info: RunInfo) -> None:
    """Write the state file atomically.

    Raises:
        StateError: If the file cannot be written
    """
    try:
        state_path = get_state_path(create=True)
        temp_path = state_path.with_suffix(".tmp")
        with open(temp_path, "w") as f:
            json.dump(asdict(info), f, indent=2)
            f.write("\n")
        temp_path.replace(state_path)
    except OSError as e:
        raise StateError(f"Failed to write state file: {e}") from e


def load_state() -> RunInfo:
    """Read the state file.

    Raises:
        StateError: If there is no state file or it cannot be parsed
    """
    state_path = get_state_path()
    if not state_path.exists():
        raise StateError("No saved run state found")

    try:
        with open(state_path) as f:
            data = json.load(f)
        return RunInfo.from_dict(data)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        raise StateError(f"Failed to parse state file {state_path}: {e}") from e


class FileStateSaver:
    """Saves the engine's checkpoints to the state file, along with the request."""

    def __init__(self, file: str, tags_expr: str | None, steps: list[str]):
        self.file = file
        self.tags_expr = tags_expr
        self.steps = list(steps)

    def save(self, state: RunState) -> None:
        _logging.debug(f"Saving run state: last_step_id={state.last_step_id}")
        save_state(
            RunInfo(
                file=self.file,
                tags_expr=self.tags_expr,
                steps=self.steps,
                interactive=state.interactive,
                last_step_id=state.last_step_id,
            )
        )


__all__ = ["RunInfo", "save_state", "load_state", "FileStateSaver"]
