"""Load step documents from YAML.

A document is a mapping with three optional keys:

    includes:   list of other documents, relative to this one
    defaults:   shells and Windows package manager inherited by steps
    steps:      list of step mappings

Included documents are loaded first, so their steps come before the
including document's own steps. A document that was already visited during
the current load is skipped, which also breaks include cycles. Defaults flow
down from the including document and are overridden field by field.
"""

import logging
from pathlib import Path

import yaml

from .config import Defaults, Script, Step
from .errors import ConfigError, ExpressionError, format_field_error
from .expr import parse as parse_expr
from .system.pkg import parse_package_manager, parse_package_source
from .system.shell import parse_shell

_logging = logging.getLogger(__name__)

_DOCUMENT_KEYS = {"includes", "defaults", "steps"}
_STEP_KEYS = {
    "id",
    "tags",
    "os",
    "env",
    "when",
    "package_source",
    "packages",
    "pre_script",
    "script",
}
_DEFAULTS_KEYS = {
    "windows_package_manager",
    "windows_shell",
    "linux_shell",
    "macos_shell",
}


def load_steps(path: str | Path) -> list[Step]:
    """Load all steps of a document and the documents it includes.

    Args:
        path: Entry document, absolute or relative to the working directory

    Returns:
        Steps in document order, included documents first

    Raises:
        ConfigError: If any document cannot be read or is invalid
    """
    return _load_recursive(Path(path), set(), None, None)


def _load_recursive(
    path: Path,
    visited: set[Path],
    base_dir: Path | None,
    inherited: Defaults | None,
) -> list[Step]:
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    path = Path(path.resolve())

    if path in visited:
        _logging.debug(f"Skipping already loaded document: {path}")
        return []
    visited.add(path)

    data = _load_yaml_file(path)
    entity = f"Document '{path}'"
    _log_unknown_keys(data, _DOCUMENT_KEYS, entity)

    defaults = Defaults.merge(inherited, _parse_defaults(data.get("defaults"), entity))

    steps: list[Step] = []
    _validate_string_list(data, "includes", entity)
    for include in data.get("includes") or []:
        try:
            steps.extend(_load_recursive(Path(include), visited, path.parent, defaults))
        except ConfigError as e:
            raise ConfigError(f"Failed to load included file '{include}': {e}") from e

    raw_steps = data.get("steps")
    if raw_steps is None:
        return steps
    if not isinstance(raw_steps, list):
        raise ConfigError(format_field_error(entity, "steps", "must be an array"))

    for i, raw in enumerate(raw_steps):
        steps.append(_parse_step(raw, i, str(path), defaults))

    _logging.debug(f"Loaded {len(raw_steps)} step(s) from {path}")
    return steps


def _load_yaml_file(path: Path) -> dict:
    """Read a YAML document, mapping I/O and syntax problems to ConfigError.

    An empty file is an empty document.
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    if not path.is_file():
        raise ConfigError(f"Path is not a file: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error in file '{path}': {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read file '{path}': {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Document '{path}' must be a mapping, got {type(data).__name__}"
        )
    return data


def _log_unknown_keys(data: dict, allowed: set[str], entity_name: str) -> None:
    unknown = sorted(str(key) for key in data if key not in allowed)
    if unknown:
        _logging.debug(f"{entity_name}: ignoring unknown field(s): {', '.join(unknown)}")


def _require_str_field(data: dict, field: str, entity_name: str) -> None:
    """Validate required string field.

    Raises:
        ConfigError: If field missing, not str, or empty
    """
    if field not in data:
        raise ConfigError(f"{entity_name} missing required field: {field}")
    if not isinstance(data[field], str) or not data[field].strip():
        raise ConfigError(format_field_error(entity_name, field, "must be a non-empty string"))


def _optional_field(data: dict, field: str, entity_name: str, field_type: type) -> None:
    """Validate optional field with type check.

    Raises:
        ConfigError: If field present, not None, and wrong type
    """
    if field in data and data[field] is not None:
        if not isinstance(data[field], field_type):
            type_name = field_type.__name__
            raise ConfigError(
                format_field_error(entity_name, field, f"must be a {type_name} or null")
            )


def _validate_string_list(data: dict, field: str, entity_name: str) -> None:
    """Validate list contains only non-empty strings.

    Raises:
        ConfigError: If field not a list or contains invalid strings
    """
    if field in data and data[field] is not None:
        if not isinstance(data[field], list):
            raise ConfigError(format_field_error(entity_name, field, "must be an array"))
        for i, item in enumerate(data[field]):
            if not isinstance(item, str) or not item.strip():
                raise ConfigError(
                    f"{entity_name} {field}[{i}] must be a non-empty string"
                )


def _parse_defaults(raw, entity_name: str) -> Defaults | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError(format_field_error(entity_name, "defaults", "must be an object"))

    entity = f"{entity_name} defaults"
    _log_unknown_keys(raw, _DEFAULTS_KEYS, entity)
    for key in _DEFAULTS_KEYS:
        _optional_field(raw, key, entity, str)

    try:
        return Defaults(
            windows_package_manager=_maybe(
                parse_package_manager, raw.get("windows_package_manager")
            ),
            windows_shell=_maybe(parse_shell, raw.get("windows_shell")),
            linux_shell=_maybe(parse_shell, raw.get("linux_shell")),
            macos_shell=_maybe(parse_shell, raw.get("macos_shell")),
        )
    except ValueError as e:
        raise ConfigError(f"{entity}: {e}") from e


def _maybe(parse, value):
    return None if value is None else parse(value)


def _parse_script(raw, field: str, entity_name: str) -> Script | None:
    """Accept a bare string or a ``{shell, run}`` mapping."""
    if raw is None:
        return None
    if isinstance(raw, str):
        return Script(code=raw)
    if not isinstance(raw, dict):
        raise ConfigError(
            f"{entity_name} field '{field}' must be a string or an object with 'shell' and 'run'"
        )

    script_entity = f"{entity_name} {field}"
    _log_unknown_keys(raw, {"shell", "run"}, script_entity)
    _require_str_field(raw, "shell", script_entity)
    if not isinstance(raw.get("run"), str):
        raise ConfigError(f"{script_entity} field 'run' must be a string")

    try:
        shell = parse_shell(raw["shell"])
    except ValueError as e:
        raise ConfigError(f"{script_entity}: {e}") from e
    return Script(code=raw["run"], shell=shell)


def _parse_step(raw, index: int, source_file: str, defaults: Defaults) -> Step:
    if not isinstance(raw, dict):
        raise ConfigError(
            f"steps[{index}] in '{source_file}' must be an object, got {type(raw).__name__}"
        )

    _require_str_field(raw, "id", f"steps[{index}] in '{source_file}'")
    step_id = raw["id"]
    entity = f"Step '{step_id}'"

    _log_unknown_keys(raw, _STEP_KEYS, entity)
    for field in ("tags", "env", "packages"):
        _validate_string_list(raw, field, entity)
    _optional_field(raw, "os", entity, str)
    _optional_field(raw, "package_source", entity, str)

    os_expr = None
    if raw.get("os") is not None:
        try:
            os_expr = parse_expr(raw["os"])
        except ExpressionError as e:
            raise ConfigError(format_field_error(entity, "os", f"is invalid: {e}")) from e

    package_source = None
    if raw.get("package_source") is not None:
        try:
            package_source = parse_package_source(raw["package_source"])
        except ValueError as e:
            raise ConfigError(f"{entity}: {e}") from e

    return Step(
        id=step_id,
        tags=tuple(raw.get("tags") or ()),
        os=os_expr,
        env=tuple(raw.get("env") or ()),
        when_script=_parse_script(raw.get("when"), "when", entity),
        pre_script=_parse_script(raw.get("pre_script"), "pre_script", entity),
        script=_parse_script(raw.get("script"), "script", entity),
        package_source=package_source,
        packages=tuple(raw.get("packages") or ()),
        source_file=source_file,
        defaults=defaults,
    )


__all__ = ["load_steps"]
