"""
rustfmt formatter: the full tier.

Feeds the candidate text to an external rustfmt on stdin and reads the
result from stdout. rustfmt cannot parse paths that contain ``$crate``, so
those are swapped for a placeholder of the same width before formatting
and restored afterwards. Editions are tried newest first; all of them
together count as one attempt of this tier.

A missing binary, a non-zero exit on every edition, or a timeout all raise
FormatterUnavailable.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from typing import Any

from expandview.errors import FormatterUnavailable
from expandview.formatting.backend import Formatter
from expandview.formatting.types import FormatTier

LOG = logging.getLogger("expandview.formatting.backends.rustfmt")

DOLLAR_CRATE = "$crate"
DOLLAR_CRATE_PLACEHOLDER = "Ξcrate"
EDITIONS = ("2021", "2018", "2015")
DEFAULT_TIMEOUT_S = 10.0

# Keep imports and modules in expansion order; doc attributes read as comments.
RUSTFMT_CONFIG = "normalize_doc_attributes=true,reorder_imports=false,reorder_modules=false"


def which_rustfmt() -> str | None:
    """Locate rustfmt: ``RUSTFMT`` env (empty disables it), then ``PATH``."""
    configured = os.environ.get("RUSTFMT")
    if configured is not None:
        return configured or None
    return shutil.which("rustfmt")


class RustfmtFormatter(Formatter):
    """
    Formatting via an external rustfmt process.

    Only used for text inside the public grammar; the chain skips this tier
    when the selection carries internal-only syntax.
    """

    name = "rustfmt"
    tier = FormatTier.FULL

    def __init__(
        self,
        binary: str | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        editions: tuple[str, ...] = EDITIONS,
        **kwargs: Any,
    ) -> None:
        self._binary = binary
        self._timeout_s = timeout_s
        self._editions = editions

    @property
    def binary(self) -> str | None:
        return self._binary or which_rustfmt()

    async def format(self, source: str) -> str:
        binary = self.binary
        if not binary:
            raise FormatterUnavailable(self.name, "rustfmt not found; set RUSTFMT or install the rustfmt component")

        wip = source.replace(DOLLAR_CRATE, DOLLAR_CRATE_PLACEHOLDER).encode("utf-8")
        failures: list[str] = []

        for edition in self._editions:
            cmd = [binary, "--edition", edition, "--config", RUSTFMT_CONFIG]
            t0 = time.monotonic()
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                raise FormatterUnavailable(self.name, f"cannot run {binary}: {exc}") from exc

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(wip), timeout=self._timeout_s)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.communicate()
                raise FormatterUnavailable(self.name, f"timed out after {self._timeout_s:g}s")

            LOG.debug(
                "rustfmt --edition %s exited %s in %.3fs", edition, proc.returncode, time.monotonic() - t0
            )
            if proc.returncode == 0:
                formatted = stdout.decode("utf-8", errors="replace")
                return formatted.replace(DOLLAR_CRATE_PLACEHOLDER, DOLLAR_CRATE)

            first_line = stderr.decode("utf-8", errors="replace").strip().splitlines()[:1]
            failures.append(f"edition {edition}: exit {proc.returncode}" + (f" ({first_line[0]})" if first_line else ""))

        raise FormatterUnavailable(self.name, "; ".join(failures) or "no editions configured")
