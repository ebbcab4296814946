"""Per-step confirmation in interactive runs."""

import sys
from enum import Enum
from typing import Callable

import click
import questionary

from ..config import Step
from .logger import ProgressLogger

MAX_SCRIPT_LINES = 8


class Decision(Enum):
    RUN = "r"
    SKIP = "s"
    ABORT = "a"
    LEAVE_INTERACTIVE = "l"
    VIEW_FULL = "v"


_LABELS = {
    Decision.RUN: "Run",
    Decision.SKIP: "Skip",
    Decision.ABORT: "Abort",
    Decision.LEAVE_INTERACTIVE: "Leave interactive mode",
    Decision.VIEW_FULL: "View full step",
}

# Receives the question and the allowed decisions, returns the raw answer
Prompt = Callable[[str, list[Decision]], str | None]


def _is_too_long(code: str) -> bool:
    return len(code.splitlines()) > MAX_SCRIPT_LINES


def needs_truncation(step: Step) -> bool:
    return any(
        script is not None and _is_too_long(script.code)
        for script in (step.pre_script, step.script)
    )


def _echo_script(code: str, logger: ProgressLogger, full: bool) -> None:
    lines = code.splitlines()
    shown = lines if full else lines[:MAX_SCRIPT_LINES]
    for line in shown:
        click.echo(click.style(line, fg="magenta"), file=logger.out)
    if len(shown) < len(lines):
        click.echo("...", file=logger.out)


def print_step(step: Step, logger: ProgressLogger, full: bool = False) -> None:
    click.echo(f"step {click.style(step.id, fg='cyan')}", file=logger.out)
    if step.pre_script is not None:
        click.echo("pre_script:", file=logger.out)
        _echo_script(step.pre_script.code, logger, full)
    if step.packages:
        packages = click.style(", ".join(step.packages), fg="green")
        click.echo(f"packages: {packages}", file=logger.out)
    if step.script is not None:
        click.echo("script:", file=logger.out)
        _echo_script(step.script.code, logger, full)


def default_prompt(question: str, decisions: list[Decision]) -> str | None:
    """Ask with a select list on a TTY, or read a letter from stdin."""
    if sys.stdin.isatty():
        choices = [
            questionary.Choice(title=_LABELS[d], value=d.value) for d in decisions
        ]
        try:
            return questionary.select(question, choices=choices).ask()
        except KeyboardInterrupt:
            return Decision.ABORT.value
    try:
        return click.prompt(question, default="", show_default=False)
    except click.Abort:
        return None


def ask_confirmation(
    step: Step, logger: ProgressLogger, prompt: Prompt | None = None
) -> Decision:
    """Show the step and ask what to do with it.

    Returns one of RUN, SKIP, ABORT or LEAVE_INTERACTIVE. Viewing the full
    step prints it and asks again. A cancelled prompt aborts.
    """
    prompt = prompt or default_prompt
    decisions = [
        Decision.RUN,
        Decision.SKIP,
        Decision.ABORT,
        Decision.LEAVE_INTERACTIVE,
    ]
    if needs_truncation(step):
        decisions.append(Decision.VIEW_FULL)

    options = ", ".join(f"{d.value}={_LABELS[d]}" for d in decisions)
    allowed = {d.value: d for d in decisions}

    print_step(step, logger)
    while True:
        question = logger.format(f"PROGRESS What do you want to do? ({options})")
        answer = prompt(question, decisions)
        if answer is None:
            return Decision.ABORT

        decision = allowed.get(answer.strip().lower())
        if decision is None:
            logger.log("Invalid input, please try again.")
            continue
        if decision == Decision.VIEW_FULL:
            print_step(step, logger, full=True)
            continue
        return decision


__all__ = [
    "Decision",
    "MAX_SCRIPT_LINES",
    "ask_confirmation",
    "default_prompt",
    "needs_truncation",
    "print_step",
]
