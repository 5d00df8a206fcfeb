"""
Command line: ``expandview [ITEM] [cargo flags] [presentation flags]``.

Also installed as ``cargo-expandview`` so it runs as ``cargo expandview``;
cargo passes the subcommand name as the first argument, which is dropped.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from expandview.config import ExpandConfig
from expandview.diagnostics import Diagnostics, NoticeKind
from expandview.errors import ExpandError, ToolchainFailure
from expandview.formatting.backends.rustfmt import which_rustfmt
from expandview.options import Coloring, RenderOptions
from expandview.pipeline import expand, render
from expandview.presentation.themes import list_themes
from expandview.toolchain import ExpandArgs, build_command

LOG = logging.getLogger("expandview.cli")

SUBCOMMAND = "expandview"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="expandview",
        description="Show the result of macro expansion, scoped to one item and highlighted.",
    )
    parser.add_argument("item", nargs="?", metavar="ITEM", help="Local path to module or other named item to expand, e.g. os::unix::ffi")

    cargo = parser.add_argument_group("cargo options")
    cargo.add_argument("--features", metavar="FEATURES", help="Space or comma separated list of features to activate")
    cargo.add_argument("--all-features", action="store_true", help="Activate all available features")
    cargo.add_argument("--no-default-features", action="store_true", help="Do not activate the `default` feature")
    cargo.add_argument("--lib", action="store_true", help="Expand only this package's library")
    cargo.add_argument("--bin", nargs="?", const="", metavar="NAME", help="Expand only the specified binary (bare: list the available ones)")
    cargo.add_argument("--example", nargs="?", const="", metavar="NAME", help="Expand only the specified example (bare: list the available ones)")
    cargo.add_argument("--test", nargs="?", const="", metavar="NAME", help="Expand only the specified test target (bare: list the available ones)")
    cargo.add_argument("--tests", action="store_true", help="Include tests when expanding the lib or bin")
    cargo.add_argument("--bench", nargs="?", const="", metavar="NAME", help="Expand only the specified bench target (bare: list the available ones)")
    cargo.add_argument("--target", metavar="TARGET", help="Target triple which compiles will be for")
    cargo.add_argument("--target-dir", metavar="DIRECTORY", help="Directory for all generated artifacts")
    cargo.add_argument("--manifest-path", metavar="PATH", help="Path to Cargo.toml")
    cargo.add_argument("-p", "--package", nargs="?", const="", metavar="SPEC", help="Package to expand (bare: list the workspace packages)")
    cargo.add_argument("--release", action="store_true", help="Build artifacts in release mode, with optimizations")
    cargo.add_argument("--profile", metavar="PROFILE-NAME", help="Build artifacts with the specified profile")
    cargo.add_argument("-j", "--jobs", type=int, metavar="N", help="Number of parallel jobs, defaults to # of CPUs")
    cargo.add_argument("--verbose", action="store_true", help="Print command lines as they are executed")
    cargo.add_argument("--frozen", action="store_true", help="Require Cargo.lock and cache are up to date")
    cargo.add_argument("--locked", action="store_true", help="Require Cargo.lock is up to date")
    cargo.add_argument("--offline", action="store_true", help="Run without accessing the network")
    cargo.add_argument("-Z", dest="unstable_flags", action="append", default=[], metavar="FLAG", help="Unstable (nightly-only) flags to Cargo")

    output = parser.add_argument_group("output options")
    output.add_argument("--color", choices=[c.value for c in Coloring], help="Coloring: auto, always, never")
    output.add_argument("--theme", help="Select syntax highlighting theme")
    output.add_argument("--themes", action="store_true", help="Print available syntax highlighting theme names")
    paging = output.add_mutually_exclusive_group()
    paging.add_argument("--pager", dest="paging", action="store_true", default=None, help="Page the output")
    paging.add_argument("--no-pager", dest="paging", action="store_false", help="Do not page the output")
    output.add_argument("--ugly", action="store_true", help="Do not attempt to format the output")
    output.add_argument("--keep-macros", action="store_true", help="Keep macro definitions and invocations in the output")
    output.add_argument("--quiet-degraded", action="store_true", help="Do not warn when formatting falls back to a lower tier")
    output.add_argument("--input", metavar="FILE", help="Read already expanded text from FILE ('-' for stdin) instead of running cargo")
    output.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: $EXPANDVIEW_LOG_LEVEL or WARNING)",
    )
    return parser


def _cargo_color(color: Coloring) -> str:
    if color is Coloring.AUTO:
        return "always" if os.name != "nt" and sys.stderr.isatty() else "never"
    return color.value


def expand_args(ns: argparse.Namespace, color: Coloring) -> ExpandArgs:
    return ExpandArgs(
        features=ns.features,
        all_features=ns.all_features,
        no_default_features=ns.no_default_features,
        lib=ns.lib,
        bin=ns.bin,
        example=ns.example,
        test=ns.test,
        tests=ns.tests,
        bench=ns.bench,
        target=ns.target,
        target_dir=ns.target_dir,
        manifest_path=ns.manifest_path,
        package=ns.package,
        release=ns.release,
        profile=ns.profile,
        jobs=ns.jobs,
        verbose=ns.verbose,
        color=_cargo_color(color),
        frozen=ns.frozen,
        locked=ns.locked,
        offline=ns.offline,
        unstable_flags=list(ns.unstable_flags),
    )


def render_options(ns: argparse.Namespace, config: ExpandConfig) -> RenderOptions:
    """Flags over configuration over defaults."""
    paging = ns.paging if ns.paging is not None else bool(config.paging)
    return RenderOptions(
        color=ns.color or config.color or Coloring.AUTO,
        theme=ns.theme or config.theme,
        paging=paging,
        pager_command=config.pager,
        warn_on_degraded=not ns.quiet_degraded,
        ugly=ns.ugly,
        strip_macros=not ns.keep_macros,
    )


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, encoding="utf-8") as f:
        return f.read()


def _silence_stdout() -> None:
    # Python would report the broken pipe again when flushing at exit.
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    except (OSError, ValueError):
        LOG.debug("Could not redirect closed stdout")


async def run(ns: argparse.Namespace, config: ExpandConfig) -> Diagnostics:
    options = render_options(ns, config)

    if config.rustfmt and not options.ugly and which_rustfmt() is None:
        raise ExpandError(
            "configuration sets rustfmt=true, but rustfmt is not found. Install rustfmt by running "
            "`rustup component add rustfmt`."
        )

    if ns.input is not None:
        text = _read_input(ns.input)
        _, diagnostics = await render(text, ns.item, options, sink=sys.stdout)
        return diagnostics

    args = expand_args(ns, options.color)
    if ns.verbose:
        print(f"     Running `{' '.join(build_command(args))}`", file=sys.stderr)
    _, diagnostics = await expand(args, options, sys.stdout, item=ns.item, stderr=sys.stderr)
    return diagnostics


def main(argv: Optional[list[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv[:1] == [SUBCOMMAND]:
        argv = argv[1:]

    ns = build_parser().parse_args(argv)
    config = ExpandConfig.load()

    level = ns.log_level or config.log_level
    if level not in logging.getLevelNamesMapping():
        level = "WARNING"
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
    )

    if ns.themes:
        for theme in list_themes():
            print(theme)
        return 0

    try:
        diagnostics = asyncio.run(run(ns, config))
    except ToolchainFailure as exc:
        sys.stderr.write(exc.diagnostics)
        if exc.message or not exc.diagnostics:
            print(f"ERROR: {exc}", file=sys.stderr)
        return exc.exit_code if exc.exit_code > 0 else 1
    except (ExpandError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if diagnostics.has(NoticeKind.OUTPUT_CLOSED):
        _silence_stdout()
    return 0


if __name__ == "__main__":
    sys.exit(main())
