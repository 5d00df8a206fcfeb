"""
Caller-facing options for a render.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field


class Coloring(StrEnum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class RenderOptions(BaseModel):
    """Options for :func:`expandview.pipeline.render`.

    ``warn_on_degraded`` chooses between warning about a degraded formatting
    tier and accepting it silently; the notice is recorded either way.
    """

    color: Coloring = Coloring.AUTO
    theme: Optional[str] = None
    paging: bool = False
    pager_command: Optional[str] = None
    warn_on_degraded: bool = True
    ugly: bool = False
    use_rustfmt: bool = True
    rustfmt_timeout_s: float = Field(default=10.0, gt=0)
    strip_macros: bool = False
    stable_grammar: Optional[bool] = None
