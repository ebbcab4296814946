"""Live execution of selected steps.

Each step goes through the same sequence:

    save state -> guard -> (confirm) -> pre-script -> packages -> script

The state is saved before the guard so an interrupted run resumes at the
step it was on, guard included. A failing guard skips the step; any other
failure stops the run and leaves the state pointing at the failed step.
"""

import logging
from pathlib import Path
from typing import IO

import click

from ..aliases import PackageAliases
from ..config import Script, Step
from ..errors import ExecutionError, ScriptValidationError, StateError
from ..execution import stream_command
from ..system.host import HostContext
from .interactive import Decision, Prompt, ask_confirmation
from .logger import ProgressLogger
from .models import RunReport, RunState, StateSaver
from .packages import install_packages, resolve_packages, resolve_shells
from .script_checker import ScriptChecker, check_scripts

_logging = logging.getLogger(__name__)


def step_dir(step: Step) -> str | None:
    """Scripts run in the directory of the document that defines the step."""
    return str(Path(step.source_file).parent) if step.source_file else None


def run_script(script: Script, cwd: str | None, checker: ScriptChecker, out: IO[str]) -> None:
    """Run a resolved script, streaming its output to ``out``.

    Scripts that did not go through the pre-run check are checked first.

    Raises:
        ScriptValidationError: If the late check fails
        ExecutionError: If the script exits non-zero or is killed by a signal
    """
    shell = script.shell
    if shell is None:
        raise ValueError("script shell must be resolved before running")

    if not checker.is_checked(script):
        checker.check_script(script, skip_if_shell_unavailable=False)

    try:
        code = stream_command(shell.run_args(script.code), cwd, out)
    except OSError as e:
        raise ExecutionError(f"Failed to start {shell.command}: {e}", tool=shell.command) from e

    if code < 0:
        raise ExecutionError(f"{shell.command} script terminated by signal", tool=shell.command)
    if code != 0:
        raise ExecutionError(
            f"{shell.command} script failed with code {code}", tool=shell.command
        )


def _save_state(state_saver: StateSaver, state: RunState, logger: ProgressLogger) -> None:
    try:
        state_saver.save(state)
    except StateError as e:
        _logging.warning(f"Failed to save run state: {e}")
        logger.log(f"{click.style('Warning:', fg='yellow')} Failed to save run state")


def _run_step_script(
    step: Step, kind: str, script: Script, checker: ScriptChecker, logger: ProgressLogger
) -> None:
    try:
        run_script(script, step_dir(step), checker, logger.out)
    except (ExecutionError, ScriptValidationError) as e:
        raise ExecutionError(
            f"Failed to run {kind} in file {step.source_file} step '{step.id}': {e}",
            step_id=step.id,
            source_file=step.source_file,
            tool=script.shell.command if script.shell else None,
        ) from e


def run_step(
    step: Step, host: HostContext, checker: ScriptChecker, logger: ProgressLogger
) -> None:
    """Run the pre-script, package installation and script of a resolved step."""
    if step.pre_script is not None:
        logger.log("⚙️ PROGRESS Running pre-script...")
        _run_step_script(step, "pre_script", step.pre_script, checker, logger)

    if step.packages:
        install_packages(step, host, logger.out, log=logger.log)

    if step.script is not None:
        logger.log("⚙️ PROGRESS Running script...")
        _run_step_script(step, "script", step.script, checker, logger)


def run_steps(
    steps: list[Step],
    host: HostContext,
    aliases: PackageAliases,
    state_saver: StateSaver,
    checker: ScriptChecker,
    out: IO[str],
    interactive: bool = False,
    prompt: Prompt | None = None,
) -> RunReport:
    """Run ``steps`` in order.

    Shells are resolved up front for the script check. Package managers are
    resolved when each step runs, so a manager installed by an earlier step
    is picked up.

    Args:
        steps: Selected steps, in execution order
        host: Facts about this machine
        aliases: Package alias table
        state_saver: Receives a checkpoint before each step and after success
        checker: Script checker shared with the pre-run check
        out: Stream for progress and script output
        interactive: Ask before each step
        prompt: Replacement for the interactive prompt

    Returns:
        What happened to each step

    Raises:
        ScriptValidationError: If a script fails the pre-run check
        ExecutionError: On the first hard failure, including a step whose
            package manager cannot be chosen
    """
    resolved = [resolve_shells(step, host) for step in steps]
    check_scripts(resolved, checker, skip_if_shell_unavailable=True)

    logger = ProgressLogger(len(resolved), out)
    report = RunReport()

    for i, step in enumerate(resolved, start=1):
        logger.current_step = i
        _save_state(state_saver, RunState(step.id, interactive), logger)

        if step.when_script is not None:
            try:
                run_script(step.when_script, step_dir(step), checker, out)
            except (ExecutionError, ScriptValidationError) as e:
                _logging.debug(f"Guard of step '{step.id}' failed: {e}")
                logger.log(f"⏭️ PROGRESS Step '{step.id}' skipped due to failed when script")
                report.skipped_by_guard.append(step.id)
                continue

        if interactive:
            decision = ask_confirmation(step, logger, prompt)
            if decision == Decision.SKIP:
                report.skipped_by_user.append(step.id)
                continue
            if decision == Decision.ABORT:
                _logging.info(f"Run aborted at step '{step.id}'")
                report.aborted = True
                return report
            if decision == Decision.LEAVE_INTERACTIVE:
                interactive = False

        logger.log(f"🚀 PROGRESS Running step '{step.id}'...")
        run_step(resolve_packages(step, host, aliases), host, checker, logger)
        logger.log(f"✅ PROGRESS Step '{step.id}' completed")
        report.completed.append(step.id)

    _save_state(state_saver, RunState(None, interactive), logger)
    click.echo("✅ Run completed", file=out)
    return report


__all__ = ["run_script", "run_step", "run_steps", "step_dir"]
