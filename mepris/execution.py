"""Async command execution with live output."""

import asyncio
import codecs
import logging
from typing import IO

import click

CHUNK_SIZE = 4096

_logging = logging.getLogger(__name__)


async def _forward(stream: asyncio.StreamReader, queue: asyncio.Queue) -> None:
    """Push decoded chunks of ``stream`` onto ``queue``, then a None sentinel.

    Reads raw chunks instead of lines so prompts and progress bars that never
    end a line still show up immediately.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            data = await stream.read(CHUNK_SIZE)
            if not data:
                tail = decoder.decode(b"", final=True)
                if tail:
                    await queue.put(tail)
                break
            text = decoder.decode(data)
            if text:
                await queue.put(text)
    finally:
        await queue.put(None)


async def stream_command_async(
    argv: list[str], cwd: str | None, out: IO[str], stdin=None
) -> int:
    """Run ``argv`` and copy its stdout and stderr to ``out`` as they arrive.

    Args:
        argv: Program and arguments, no shell involved
        cwd: Working directory for the child
        out: Text stream receiving the merged output
        stdin: ``None`` to inherit, or ``asyncio.subprocess.DEVNULL``

    Returns:
        Exit code of the child; negative signal number if it was killed

    Raises:
        OSError: If the program cannot be started
    """
    process = None
    try:
        _logging.debug(f"Running command: {argv} (cwd={cwd})")
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdin=stdin,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        queue: asyncio.Queue = asyncio.Queue()
        readers = [
            asyncio.create_task(_forward(process.stdout, queue)),
            asyncio.create_task(_forward(process.stderr, queue)),
        ]

        open_streams = len(readers)
        while open_streams:
            chunk = await queue.get()
            if chunk is None:
                open_streams -= 1
                continue
            click.echo(chunk, file=out, nl=False)

        await asyncio.gather(*readers)
        returncode = await process.wait()
        _logging.debug(f"Command exited with {returncode}: {argv[0]}")
        return returncode
    finally:
        if process:
            transport = getattr(process, "_transport", None)
            if transport:
                transport.close()


def stream_command(argv: list[str], cwd: str | None, out: IO[str], stdin=None) -> int:
    """Blocking wrapper around ``stream_command_async``."""
    return asyncio.run(stream_command_async(argv, cwd, out, stdin=stdin))


__all__ = ["stream_command", "stream_command_async", "CHUNK_SIZE"]
