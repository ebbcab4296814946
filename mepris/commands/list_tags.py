"""List-tags command implementation."""

import click

from mepris import setup_logging
from mepris.commands.list_steps import sorted_tags
from mepris.commands.utils import get_host, handle_errors
from mepris.config import check_unique_ids
from mepris.filters import filter_by_os
from mepris.loader import load_steps


@click.command(name="list-tags")
@click.option(
    "--file", "-f", "file", required=True, type=click.Path(dir_okay=False),
    help="Document describing the steps",
)
@click.pass_context
def list_tags(ctx, file: str):
    """List the tags used by steps compatible with this OS."""
    setup_logging(ctx.obj.get("debug", False))
    with handle_errors():
        steps = load_steps(file)
        check_unique_ids(steps)
        compatible = filter_by_os(steps, get_host(ctx).os_info).matching
        for tag in sorted_tags(compatible):
            click.echo(tag)
