"""Run command implementation."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO

import click

from mepris import setup_logging
from mepris.aliases import load_aliases
from mepris.commands.utils import get_host, handle_errors
from mepris.config import check_unique_ids
from mepris.env import check_env, load_env
from mepris.errors import ConfigError
from mepris.filters import filter_steps
from mepris.loader import load_steps
from mepris.runner import (
    RunPlan,
    RunReport,
    ScriptChecker,
    plan_steps,
    render_plan,
    run_steps,
)
from mepris.runner.interactive import Prompt
from mepris.state import FileStateSaver
from mepris.system import HostContext


@dataclass
class RunRequest:
    """Everything ``run`` and ``resume`` need to select and run steps."""

    file: str
    tags_expr: str | None = None
    steps: tuple[str, ...] = ()
    start_step_id: str | None = None
    interactive: bool = False
    dry_run: bool = False


def run_document(
    request: RunRequest,
    host: HostContext,
    out: IO[str],
    prompt: Prompt | None = None,
) -> RunPlan | RunReport:
    """Load, select and then plan or run the steps of a document.

    Returns:
        The plan for dry runs, the run report otherwise

    Raises:
        MeprisError: On any failure; the subclass gives the category
    """
    path = Path(request.file).resolve()
    load_env(path)

    all_steps = load_steps(path)
    if not all_steps:
        raise ConfigError(f"The file doesn't contain any steps: {path}")
    check_unique_ids(all_steps)

    result = filter_steps(
        all_steps,
        host.os_info,
        step_ids=request.steps,
        tags_expr=request.tags_expr,
        start_step_id=request.start_step_id,
    )
    check_env(result.filtered)

    aliases = load_aliases(path.parent)
    checker = ScriptChecker(host)

    if request.dry_run:
        plan = plan_steps(result.filtered, host, aliases, checker, filter_result=result)
        for line in render_plan(plan):
            click.echo(line, file=out)
        return plan

    state_saver = FileStateSaver(str(path), request.tags_expr, list(request.steps))
    return run_steps(
        result.filtered,
        host,
        aliases,
        state_saver,
        checker,
        out,
        interactive=request.interactive,
        prompt=prompt,
    )


@click.command()
@click.option(
    "--file", "-f", "file", required=True, type=click.Path(dir_okay=False),
    help="Document describing the steps",
)
@click.option(
    "--tags", "-t", "tags_expr", default=None,
    help="Tag expression, e.g. 'dev && !gui'",
)
@click.option(
    "--step", "-s", "steps", multiple=True,
    help="Run only this step (repeatable, runs in the given order)",
)
@click.option(
    "--interactive", "-i", is_flag=True,
    help="Ask for confirmation before each step",
)
@click.option(
    "--dry-run", is_flag=True,
    help="Show what would run without executing scripts or installing packages",
)
@click.pass_context
def run(ctx, file: str, tags_expr: str | None, steps: tuple[str, ...],
        interactive: bool, dry_run: bool):
    """Execute steps from a document."""
    setup_logging(ctx.obj.get("debug", False))
    with handle_errors():
        request = RunRequest(
            file=file,
            tags_expr=tags_expr,
            steps=steps,
            interactive=interactive,
            dry_run=dry_run,
        )
        run_document(request, get_host(ctx), sys.stdout)
