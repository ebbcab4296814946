"""Dry runs: report what a run would do without changing the host.

Guard scripts are the exception. They run for real, with their output
discarded, because their result decides whether a step would run.
"""

import logging
import os

from ..aliases import PackageAliases
from ..config import Step
from ..errors import ExecutionError, ScriptValidationError
from ..filters import PipelineResult
from ..system.host import HostContext
from .engine import run_script, step_dir
from .models import (
    Outcome,
    PackageInfo,
    PackageManagerInfo,
    RunPlan,
    StepOutcome,
)
from .packages import is_package_installed, resolve_packages, resolve_shells
from .script_checker import ScriptChecker, check_scripts

_logging = logging.getLogger(__name__)


def _guard_passes(step: Step, checker: ScriptChecker) -> bool:
    if step.when_script is None:
        return True
    with open(os.devnull, "w") as sink:
        try:
            run_script(step.when_script, step_dir(step), checker, sink)
        except (ExecutionError, ScriptValidationError) as e:
            _logging.debug(f"Guard of step '{step.id}' failed: {e}")
            return False
    return True


def plan_step(
    step: Step, host: HostContext, aliases: PackageAliases, checker: ScriptChecker
) -> StepOutcome:
    """Plan one step whose shells are already resolved.

    The package manager is chosen only once the guard has passed, as in a
    live run.
    """
    if not _guard_passes(step, checker):
        return StepOutcome(step.id, Outcome.SKIPPED_BY_GUARD)

    resolved = resolve_packages(step, host, aliases)
    outcome = StepOutcome(step.id, Outcome.WOULD_RUN)
    manager = resolved.package_manager
    if manager is not None:
        manager_installed = host.is_binary_available(manager.command)
        outcome.package_manager = PackageManagerInfo(manager.command, manager_installed)
        for original, name in zip(step.packages, resolved.packages):
            outcome.packages.append(
                PackageInfo(
                    name=name,
                    original=original,
                    use_alias=name != original,
                    installed=manager_installed and is_package_installed(manager, name),
                )
            )

    outcome.missing_shells = [
        shell.command
        for shell in resolved.used_shells()
        if not host.is_shell_available(shell)
    ]
    return outcome


def plan_steps(
    steps: list[Step],
    host: HostContext,
    aliases: PackageAliases,
    checker: ScriptChecker,
    filter_result: PipelineResult | None = None,
) -> RunPlan:
    """Build the plan for ``steps``.

    Steps removed by the filter pipeline are appended after the planned
    steps, grouped by the stage that removed them.
    """
    resolved = [resolve_shells(step, host) for step in steps]
    check_scripts(resolved, checker, skip_if_shell_unavailable=True)

    plan = RunPlan()
    for step in resolved:
        plan.outcomes.append(plan_step(step, host, aliases, checker))

    if filter_result is not None:
        for removed, outcome in (
            (filter_result.excluded_by_tags, Outcome.EXCLUDED_BY_TAG),
            (filter_result.excluded_by_os, Outcome.EXCLUDED_BY_OS),
            (filter_result.skipped, Outcome.SKIPPED_BY_RESUME),
        ):
            plan.outcomes.extend(StepOutcome(step.id, outcome) for step in removed)
    return plan


def _format_packages(outcome: StepOutcome) -> str:
    manager = outcome.package_manager
    names = []
    for package in outcome.packages:
        text = str(package)
        if package.installed:
            text += " (already installed)"
        names.append(text)

    via = ""
    if manager is not None:
        via = f" with {manager.name}"
        if not manager.installed:
            via += " (not installed)"
    return f"📦 Would install packages{via}: {', '.join(names)}"


def render_plan(plan: RunPlan) -> list[str]:
    """Lines of the report printed by ``run --dry-run``."""
    lines = []
    for outcome in plan.would_run:
        lines.append(f"🚀 Would run step '{outcome.step_id}'")
        if outcome.packages:
            lines.append(_format_packages(outcome))
        if outcome.missing_shells:
            lines.append(
                f"⚠️ Step '{outcome.step_id}' uses shell(s) that are not currently "
                "available. Make sure they are installed in the previous steps: "
                f"{', '.join(outcome.missing_shells)}"
            )

    if not plan.would_run:
        lines.append("❌ No steps would be run")

    summaries = [
        (Outcome.EXCLUDED_BY_TAG, "🚫 Ignored steps due to tag mismatch"),
        (Outcome.EXCLUDED_BY_OS, "🚫 Ignored steps due to OS mismatch"),
        (Outcome.SKIPPED_BY_RESUME, "⏭️ Skipped steps due to resume"),
        (Outcome.SKIPPED_BY_GUARD, "🚫 Ignored steps due to failed when script"),
    ]
    for outcome, title in summaries:
        ids = plan.ids(outcome)
        if ids:
            lines.append(f"{title}: {', '.join(ids)}")
    return lines


__all__ = ["plan_step", "plan_steps", "render_plan"]
