"""
User configuration.

Settings come from the ``[expand]`` table of the Cargo config file and from
environment variables, the environment winning. Command-line flags are
applied on top by the CLI.

``$CARGO_HOME/config.toml``::

    [expand]
    theme = "monokai"
    color = "auto"        # auto | always | never
    pager = true          # or a command line, e.g. "less -R"
    rustfmt = true        # fail if rustfmt is missing
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

LOG = logging.getLogger("expandview.config")

CONFIG_TABLE = "expand"
CONFIG_FILES = ("config.toml", "config")
COLOR_VALUES = ("auto", "always", "never")
FALSY = ("0", "false", "no", "off")


def cargo_home() -> Path:
    configured = os.getenv("CARGO_HOME")
    if configured:
        return Path(configured)
    return Path.home() / ".cargo"


def _env_flag(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() not in FALSY


@dataclass
class ExpandConfig:
    """Resolved user settings. ``None`` means not configured."""

    theme: str | None = None
    color: str | None = None
    paging: bool | None = None
    pager: str | None = None
    rustfmt: bool | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "ExpandConfig":
        color = os.getenv("EXPANDVIEW_COLOR") or None
        if color is not None and color not in COLOR_VALUES:
            LOG.warning("Ignoring EXPANDVIEW_COLOR=%r; expected one of %s", color, ", ".join(COLOR_VALUES))
            color = None
        # https://no-color.org: any non-empty value.
        if color is None and os.getenv("NO_COLOR"):
            color = "never"
        return cls(
            theme=os.getenv("EXPANDVIEW_THEME") or None,
            color=color,
            pager=os.getenv("EXPANDVIEW_PAGER") or None,
            rustfmt=_env_flag("EXPANDVIEW_RUSTFMT"),
            log_level=os.getenv("EXPANDVIEW_LOG_LEVEL", "WARNING").upper(),
        )

    @classmethod
    def from_cargo_config(cls, home: Path | None = None) -> "ExpandConfig":
        """Read ``[expand]`` from the first Cargo config file that exists.

        A file that cannot be read or parsed is logged and ignored.
        """
        home = home if home is not None else cargo_home()
        for name in CONFIG_FILES:
            path = home / name
            if not path.is_file():
                continue
            try:
                with path.open("rb") as f:
                    document = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                LOG.warning("Ignoring unreadable cargo config %s: %s", path, exc)
                return cls()
            table = document.get(CONFIG_TABLE, {})
            if not isinstance(table, dict):
                LOG.warning("Ignoring [%s] in %s: not a table", CONFIG_TABLE, path)
                return cls()
            LOG.debug("Loaded [%s] from %s", CONFIG_TABLE, path)
            return cls._from_table(table, path)
        return cls()

    @classmethod
    def _from_table(cls, table: dict[str, Any], path: Path) -> "ExpandConfig":
        config = cls()

        def bad(key: str, value: Any, expected: str) -> None:
            LOG.warning("Ignoring %s.%s = %r in %s: expected %s", CONFIG_TABLE, key, value, path, expected)

        theme = table.get("theme")
        if isinstance(theme, str):
            config.theme = theme
        elif theme is not None:
            bad("theme", theme, "a string")

        color = table.get("color")
        if color in COLOR_VALUES:
            config.color = color
        elif color is not None:
            bad("color", color, " | ".join(COLOR_VALUES))

        pager = table.get("pager")
        if isinstance(pager, bool):
            config.paging = pager
        elif isinstance(pager, str):
            config.paging = True
            config.pager = pager
        elif pager is not None:
            bad("pager", pager, "a boolean or a command")

        rustfmt = table.get("rustfmt")
        if isinstance(rustfmt, bool):
            config.rustfmt = rustfmt
        elif rustfmt is not None:
            bad("rustfmt", rustfmt, "a boolean")

        for key in sorted(set(table) - {"theme", "color", "pager", "rustfmt"}):
            LOG.debug("Unknown key %s.%s in %s", CONFIG_TABLE, key, path)
        return config

    def merged(self, override: "ExpandConfig") -> "ExpandConfig":
        """A copy with every configured field of *override* applied."""
        changes = {
            f.name: getattr(override, f.name)
            for f in fields(self)
            if f.name != "log_level" and getattr(override, f.name) is not None
        }
        changes["log_level"] = override.log_level
        return replace(self, **changes)

    @classmethod
    def load(cls, home: Path | None = None) -> "ExpandConfig":
        """Cargo config file, overridden by the environment."""
        return cls.from_cargo_config(home).merged(cls.from_env())
