"""
Toolchain runner: ``cargo rustc -- -Zunpretty=expanded``.

The expanded program is read from the child's stdout while its stderr
(compiler diagnostics and cargo progress) is drained at the same time, so
neither pipe can fill up and stall the child. A failed build is reported
with the compiler's stderr exactly as it was written; its output is never
parsed.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Optional, TextIO

from expandview.errors import ToolchainFailure

LOG = logging.getLogger("expandview.toolchain")

NO_OUTPUT = "rustc produced no expanded output"


def which_cargo() -> str:
    return os.environ.get("CARGO") or "cargo"


@dataclass
class ExpandArgs:
    """Cargo flags passed through to ``cargo rustc``."""

    features: Optional[str] = None
    all_features: bool = False
    no_default_features: bool = False
    lib: bool = False
    bin: Optional[str] = None
    example: Optional[str] = None
    test: Optional[str] = None
    tests: bool = False
    bench: Optional[str] = None
    target: Optional[str] = None
    target_dir: Optional[str] = None
    manifest_path: Optional[str] = None
    package: Optional[str] = None
    release: bool = False
    profile: Optional[str] = None
    jobs: Optional[int] = None
    verbose: bool = False
    color: str = "never"
    frozen: bool = False
    locked: bool = False
    offline: bool = False
    unstable_flags: list[str] = field(default_factory=list)

    @property
    def selected_profile(self) -> str:
        if self.profile:
            return self.profile
        if self.tests and self.test is None:
            return "bench" if self.release else "test"
        return "release" if self.release else "check"


def build_command(args: ExpandArgs, cargo: str | None = None) -> list[str]:
    """The full argv for one expansion."""
    cmd = [cargo or which_cargo(), "rustc", "--profile", args.selected_profile]

    if args.features:
        cmd += ["--features", args.features]
    if args.all_features:
        cmd.append("--all-features")
    if args.no_default_features:
        cmd.append("--no-default-features")
    if args.lib:
        cmd.append("--lib")
    # An empty name passes the bare flag, which makes cargo list the candidates.
    for flag, value in (
        ("--bin", args.bin),
        ("--example", args.example),
        ("--test", args.test),
        ("--bench", args.bench),
        ("--package", args.package),
    ):
        if value == "":
            cmd.append(flag)
        elif value is not None:
            cmd += [flag, value]
    for flag, value in (
        ("--target", args.target),
        ("--target-dir", args.target_dir),
        ("--manifest-path", args.manifest_path),
    ):
        if value is not None:
            cmd += [flag, value]
    if args.jobs is not None:
        cmd += ["--jobs", str(args.jobs)]
    if args.verbose:
        cmd.append("--verbose")
    cmd += ["--color", args.color]
    if args.frozen:
        cmd.append("--frozen")
    if args.locked:
        cmd.append("--locked")
    if args.offline:
        cmd.append("--offline")
    for flag in args.unstable_flags:
        cmd += ["-Z", flag]

    cmd += ["--", "-Zunpretty=expanded"]
    return cmd


def toolchain_env() -> dict[str, str]:
    env = dict(os.environ)
    # Unlocks -Zunpretty on stable toolchains.
    env["RUSTC_BOOTSTRAP"] = "1"
    return env


async def run_expansion(
    args: ExpandArgs,
    cargo: str | None = None,
    stderr: Optional[TextIO] = None,
) -> str:
    """Run the expansion and return the expanded text.

    On success the toolchain's stderr (warnings, cargo progress) is written
    verbatim to *stderr* when given; on failure it travels in the exception.

    Raises:
        ToolchainFailure: cargo could not be started, exited non-zero, or
            wrote no expanded output.
    """
    cmd = build_command(args, cargo)
    LOG.debug("Running %s", " ".join(cmd))
    t0 = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=toolchain_env(),
        )
    except OSError as exc:
        raise ToolchainFailure(127, "", f"cannot run {cmd[0]}: {exc}") from exc

    out, err = await proc.communicate()
    diagnostics = err.decode("utf-8", errors="replace")
    exit_code = proc.returncode if proc.returncode is not None else 1
    LOG.debug("%s exited %s in %.2fs (%d bytes)", cmd[0], exit_code, time.monotonic() - t0, len(out))

    if exit_code != 0:
        raise ToolchainFailure(exit_code, diagnostics)

    text = out.decode("utf-8", errors="replace")
    if not text.strip():
        raise ToolchainFailure(1, diagnostics, NO_OUTPUT)

    if stderr is not None and diagnostics:
        stderr.write(diagnostics)
        stderr.flush()
    return text
