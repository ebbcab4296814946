"""Step selection pipeline.

Stages run in a fixed order, each one consuming the steps kept by the
previous stage:

1. explicit step ids (requested order wins)
2. tag expression
3. OS compatibility (skipped in "include all" mode)
4. resume start point

Unknown ids and tags are checked against the full pool of loaded steps so a
typo is reported even when an earlier stage already dropped the step.
"""

import logging
from dataclasses import dataclass, field

from .config import Step
from .errors import SelectionError
from .expr import Expr, eval_os, eval_tags, parse
from .system.os_info import OsInfo

_logging = logging.getLogger(__name__)


@dataclass
class FilterResult:
    matching: list[Step] = field(default_factory=list)
    not_matching: list[Step] = field(default_factory=list)


@dataclass
class PipelineResult:
    """Outcome of ``filter_steps``.

    Attributes:
        filtered: Steps to plan or run, in execution order
        not_selected: Steps dropped by explicit id selection
        excluded_by_tags: Steps dropped by the tag expression
        excluded_by_os: Steps dropped as incompatible with the host
        skipped: Steps before the resume start point
    """

    filtered: list[Step] = field(default_factory=list)
    not_selected: list[Step] = field(default_factory=list)
    excluded_by_tags: list[Step] = field(default_factory=list)
    excluded_by_os: list[Step] = field(default_factory=list)
    skipped: list[Step] = field(default_factory=list)


def filter_by_ids(steps: list[Step], ids: list[str]) -> FilterResult:
    """Keep the requested steps, in the requested order.

    Raises:
        SelectionError: Listing every id not found in ``steps``
    """
    by_id = {step.id: step for step in steps}
    unknown = [step_id for step_id in ids if step_id not in by_id]
    if unknown:
        raise SelectionError(f"Unknown steps: {', '.join(unknown)}")

    requested = set(ids)
    return FilterResult(
        matching=[by_id[step_id] for step_id in dict.fromkeys(ids)],
        not_matching=[step for step in steps if step.id not in requested],
    )


def check_tags_exist(pool: list[Step], tags: set[str]) -> None:
    """Raises SelectionError listing tags that no step in ``pool`` carries."""
    known = {tag for step in pool for tag in step.tags}
    unknown = sorted(tag for tag in tags if tag not in known)
    if unknown:
        raise SelectionError(f"Unknown tags: {', '.join(unknown)}")


def filter_by_tags(
    steps: list[Step], tags_expr: str | Expr, pool: list[Step] | None = None
) -> FilterResult:
    """Partition ``steps`` by a tag expression.

    Args:
        steps: Candidate steps
        tags_expr: Expression text or an already parsed expression
        pool: Steps whose tags count as known (defaults to ``steps``)

    Raises:
        ExpressionError: If the expression is malformed
        SelectionError: If the expression references an unknown tag
    """
    expr = parse(tags_expr) if isinstance(tags_expr, str) else tags_expr
    check_tags_exist(steps if pool is None else pool, expr.variables())

    result = FilterResult()
    for step in steps:
        if eval_tags(expr, step.tags):
            result.matching.append(step)
        else:
            result.not_matching.append(step)
    return result


def filter_by_os(steps: list[Step], os_info: OsInfo) -> FilterResult:
    """Partition ``steps`` by OS compatibility; no expression means compatible."""
    result = FilterResult()
    for step in steps:
        if step.os is None or eval_os(step.os, os_info):
            result.matching.append(step)
        else:
            result.not_matching.append(step)
    return result


def filter_start_with_id(steps: list[Step], start_step_id: str) -> FilterResult:
    """Split ``steps`` at ``start_step_id``; everything before it is dropped.

    Raises:
        SelectionError: If no step has that id
    """
    for pos, step in enumerate(steps):
        if step.id == start_step_id:
            return FilterResult(matching=steps[pos:], not_matching=steps[:pos])
    raise SelectionError(f"Start step '{start_step_id}' not found in file")


def filter_steps(
    steps: list[Step],
    os_info: OsInfo,
    step_ids=(),
    tags_expr: str | None = None,
    start_step_id: str | None = None,
    include_all: bool = False,
) -> PipelineResult:
    """Run the selection stages over the loaded steps."""
    result = PipelineResult(filtered=list(steps))

    if step_ids:
        by_ids = filter_by_ids(result.filtered, list(step_ids))
        result.filtered = by_ids.matching
        result.not_selected = by_ids.not_matching

    if tags_expr:
        by_tags = filter_by_tags(result.filtered, tags_expr, pool=steps)
        result.filtered = by_tags.matching
        result.excluded_by_tags = by_tags.not_matching

    if not include_all:
        by_os = filter_by_os(result.filtered, os_info)
        result.filtered = by_os.matching
        result.excluded_by_os = by_os.not_matching

    if start_step_id is not None:
        by_start = filter_start_with_id(result.filtered, start_step_id)
        result.filtered = by_start.matching
        result.skipped = by_start.not_matching

    _logging.debug(
        f"Selected {len(result.filtered)} of {len(steps)} step(s): "
        f"{[step.id for step in result.filtered]}"
    )
    return result


__all__ = [
    "FilterResult",
    "PipelineResult",
    "filter_by_ids",
    "filter_by_tags",
    "filter_by_os",
    "filter_start_with_id",
    "filter_steps",
    "check_tags_exist",
]
