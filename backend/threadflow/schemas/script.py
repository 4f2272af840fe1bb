from __future__ import annotations
"""Pydantic v2 schemas for generated scripts.

Field names follow the generate-script wire format, so ``visualInstruction``
stays camel-cased.
"""

import re

from pydantic import BaseModel, Field, field_validator

MAX_SCRIPT_SECONDS = 60

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:s|sec|secs|seconds?)?\s*$", re.IGNORECASE)


def duration_seconds(duration: str) -> float | None:
    """Parse "3s" / "4.5 seconds" / "5" into seconds; None if unparseable."""
    match = _DURATION_RE.match(duration or "")
    if not match:
        return None
    return float(match.group(1))


class Scene(BaseModel):
    """One timed unit of dialogue plus visual direction."""

    id: int = Field(..., ge=1)
    dialogue: str = Field(..., min_length=1)
    visualInstruction: str = ""
    duration: str = ""

    @field_validator("dialogue")
    @classmethod
    def _dialogue_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("dialogue must not be blank")
        return value


class Script(BaseModel):
    """Ordered scenes produced by one generation call."""

    scenes: list[Scene]

    def total_seconds(self) -> float:
        """Sum of parseable scene durations; unparseable ones count as zero."""
        return sum(duration_seconds(s.duration) or 0.0 for s in self.scenes)

    def ordinals_are_dense(self) -> bool:
        return [s.id for s in self.scenes] == list(range(1, len(self.scenes) + 1))


class GenerateScriptRequest(BaseModel):
    """Body of the generate-script function."""

    thread_content: str = ""
    video_vibe: str | None = None


class GatewayError(BaseModel):
    error: str
