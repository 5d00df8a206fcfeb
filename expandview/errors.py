"""
Exception hierarchy for expandview.

Faults with no safe fallback abort the invocation and carry enough context
(byte offsets, exit codes) to diagnose without access to the source crate.
Faults that do have a fallback never escape their stage; they are recorded
as notices in :class:`expandview.diagnostics.Diagnostics` instead.
"""

from __future__ import annotations


class ExpandError(Exception):
    """Base exception for all expandview errors."""

    pass


class ToolchainFailure(ExpandError):
    """The compiler rejected the program, or produced nothing."""

    def __init__(self, exit_code: int, diagnostics: str, message: str | None = None) -> None:
        self.exit_code = exit_code
        self.diagnostics = diagnostics
        self.message = message
        super().__init__(message or f"toolchain exited with status {exit_code}")


class MalformedUnit(ExpandError):
    """Expanded text could not be segmented into items."""

    def __init__(self, start: int, end: int, cause: str) -> None:
        self.start = start
        self.end = end
        self.cause = cause
        super().__init__(f"malformed expanded unit at bytes {start}..{end}: {cause}")

    @property
    def span(self) -> tuple[int, int]:
        return (self.start, self.end)


class InvalidPath(ExpandError, ValueError):
    """An item path query is not well formed."""

    pass


class PathNotFound(ExpandError):
    """A non-empty item path matched nothing in the unit."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"no such item: {path}")


class ThemeNotFound(ExpandError):
    """The requested highlighting theme is not in the registry."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(
            f"unknown theme {name!r}; run with --themes to list the {len(available)} available themes"
        )


class FormatterUnavailable(ExpandError):
    """A formatter could not run or rejected its input.

    Raised by formatter strategies and absorbed by the formatting chain.
    """

    def __init__(self, formatter: str, reason: str) -> None:
        self.formatter = formatter
        self.reason = reason
        super().__init__(f"{formatter} unavailable: {reason}")
