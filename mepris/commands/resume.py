"""Resume command implementation."""

import sys

import click

from mepris import setup_logging
from mepris.commands.run import RunRequest, run_document
from mepris.commands.utils import get_host, handle_errors
from mepris.state import load_state


@click.command()
@click.option(
    "--interactive", "-i", is_flag=True,
    help="Ask for confirmation before each step",
)
@click.option(
    "--dry-run", is_flag=True,
    help="Show what would run without executing scripts or installing packages",
)
@click.pass_context
def resume(ctx, interactive: bool, dry_run: bool):
    """Resume the last run from the step it stopped at."""
    setup_logging(ctx.obj.get("debug", False))
    with handle_errors():
        info = load_state()
        if info.last_step_id is None:
            click.echo("Nothing to resume: last run was successful")
            return

        request = RunRequest(
            file=info.file,
            tags_expr=info.tags_expr,
            steps=tuple(info.steps),
            start_step_id=info.last_step_id,
            interactive=interactive or info.interactive,
            dry_run=dry_run,
        )
        run_document(request, get_host(ctx), sys.stdout)
