"""
Pager process handling.

The rendered bytes are streamed into the pager's stdin in chunks. A pager
that exits before reading everything (the user quit ``less``) is a normal
outcome, reported on the returned :class:`PagerOutcome` instead of raised.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from dataclasses import dataclass

LOG = logging.getLogger("expandview.presentation.pager")

DEFAULT_PAGER = "less -R -F -X"
CHUNK_SIZE = 16 * 1024


def pager_command(configured: str | None = None) -> list[str]:
    """The pager argv: *configured*, then ``EXPANDVIEW_PAGER``, ``PAGER``, less."""
    raw = configured or os.environ.get("EXPANDVIEW_PAGER") or os.environ.get("PAGER") or DEFAULT_PAGER
    return shlex.split(raw) or shlex.split(DEFAULT_PAGER)


@dataclass
class PagerOutcome:
    command: list[str]
    total: int
    written: int = 0
    closed_early: bool = False
    exit_code: int | None = None


async def page(data: bytes, command: list[str], chunk_size: int = CHUNK_SIZE) -> PagerOutcome:
    """Stream *data* to a pager and wait for it to exit.

    Raises:
        OSError: the pager could not be started (FileNotFoundError when the
            binary is missing).
    """
    outcome = PagerOutcome(command=command, total=len(data))
    proc = await asyncio.create_subprocess_exec(*command, stdin=asyncio.subprocess.PIPE)
    assert proc.stdin is not None

    try:
        for offset in range(0, len(data), chunk_size):
            chunk = data[offset : offset + chunk_size]
            proc.stdin.write(chunk)
            await proc.stdin.drain()
            outcome.written += len(chunk)
    except (BrokenPipeError, ConnectionResetError):
        outcome.closed_early = True
    finally:
        try:
            proc.stdin.close()
            await proc.stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            outcome.closed_early = True

    outcome.exit_code = await proc.wait()
    LOG.debug(
        "Pager %s exited %s after %d of %d bytes",
        command[0], outcome.exit_code, outcome.written, outcome.total,
    )
    return outcome
