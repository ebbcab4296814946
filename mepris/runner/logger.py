"""Progress output for a run."""

from typing import IO

import click

PROGRESS_MARKER = "PROGRESS"


class ProgressLogger:
    """Writes run messages, replacing ``PROGRESS`` with ``[i/n]``.

    >>> import io
    >>> buf = io.StringIO()
    >>> logger = ProgressLogger(12, buf)
    >>> logger.current_step = 3
    >>> logger.log("🚀 PROGRESS Running step 'git'...")
    >>> buf.getvalue()
    "🚀 [ 3/12] Running step 'git'...\\n"
    """

    def __init__(self, steps_count: int, out: IO[str]):
        self.steps_count = steps_count
        self.current_step = 0
        self.out = out

    @property
    def progress(self) -> str:
        width = len(str(self.steps_count))
        return f"[{self.current_step:>{width}}/{self.steps_count}]"

    def format(self, message: str) -> str:
        return message.replace(PROGRESS_MARKER, self.progress)

    def log(self, message: str, nl: bool = True, **style) -> None:
        text = self.format(message)
        if style:
            text = click.style(text, **style)
        click.echo(text, file=self.out, nl=nl)


__all__ = ["ProgressLogger", "PROGRESS_MARKER"]
