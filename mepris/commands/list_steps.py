"""List-steps command implementation."""

from pathlib import Path

import click

from mepris import setup_logging
from mepris.commands.utils import get_host, handle_errors
from mepris.config import Step, check_unique_ids
from mepris.expr import eval_os
from mepris.filters import filter_by_os, filter_by_tags
from mepris.loader import load_steps
from mepris.system import OsInfo


def sorted_tags(steps: list[Step]) -> list[str]:
    return sorted({tag for step in steps for tag in step.tags})


def format_table(headers: list[str], rows: list[list[str]]) -> list[str]:
    """Align columns with ljust, separated by ' | '.

    >>> format_table(["id", "tags"], [["git", "dev"], ["zsh", ""]])
    ['id  | tags', '----+-----', 'git | dev', 'zsh |']
    """
    widths = [
        max(len(row[i]) for row in [headers, *rows]) for i in range(len(headers))
    ]

    def render(cells: list[str]) -> str:
        return " | ".join(cell.ljust(w) for cell, w in zip(cells, widths)).rstrip()

    separator = "-+-".join("-" * w for w in widths)
    return [render(headers), separator, *(render(row) for row in rows)]


def step_rows(
    steps: list[Step], os_info: OsInfo, show_os: bool, show_file: bool
) -> list[list[str]]:
    rows = []
    for step in steps:
        row = [step.id, ", ".join(step.tags)]
        if show_os:
            compatible = step.os is None or eval_os(step.os, os_info)
            row.append("✅" if compatible else "❌")
        if show_file:
            row.append(Path(step.source_file).name)
        rows.append(row)
    return rows


@click.command(name="list-steps")
@click.option(
    "--file", "-f", "file", required=True, type=click.Path(dir_okay=False),
    help="Document describing the steps",
)
@click.option("--tags", "-t", "tags_expr", default=None, help="Tag expression")
@click.option(
    "--all", "include_all", is_flag=True,
    help="Include steps that are not compatible with this OS",
)
@click.option("--plain", is_flag=True, help="Print only step ids, one per line")
@click.pass_context
def list_steps(ctx, file: str, tags_expr: str | None, include_all: bool, plain: bool):
    """List the steps of a document."""
    setup_logging(ctx.obj.get("debug", False))
    with handle_errors():
        host = get_host(ctx)
        path = Path(file).resolve()
        all_steps = load_steps(path)
        check_unique_ids(all_steps)

        steps = all_steps
        if not include_all:
            steps = filter_by_os(steps, host.os_info).matching

        if tags_expr:
            steps = filter_by_tags(steps, tags_expr, pool=all_steps).matching
        elif not plain:
            click.echo(f"all tags: {', '.join(sorted_tags(steps))}")

        if plain:
            for step in steps:
                click.echo(step.id)
            return

        if not steps:
            click.echo("No steps found.")
            return

        sources = {step.source_file for step in steps}
        show_file = len(sources) > 1 or sources != {str(path)}

        headers = ["id", "tags"]
        if include_all:
            headers.append("os")
        if show_file:
            headers.append("file")

        rows = step_rows(steps, host.os_info, include_all, show_file)
        for line in format_table(headers, rows):
            click.echo(line)
