"""CLI command definitions for mepris."""

import click

from mepris import __version__
from mepris.commands.list_steps import list_steps
from mepris.commands.list_tags import list_tags
from mepris.commands.resume import resume
from mepris.commands.run import RunRequest, run, run_document


@click.group()
@click.version_option(__version__, prog_name="mepris")
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.pass_context
def cli(ctx, debug):
    """Cross-platform declarative system setup tool."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


# Register all commands
cli.add_command(run)
cli.add_command(resume)
cli.add_command(list_steps, name="list-steps")
cli.add_command(list_tags, name="list-tags")

__all__ = ["cli", "RunRequest", "run_document"]


if __name__ == "__main__":
    cli()
