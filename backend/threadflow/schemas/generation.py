from __future__ import annotations
"""Pydantic v2 schemas for the generation workflow and dashboard state."""

from typing import Literal

from pydantic import BaseModel, Field

from threadflow.schemas.script import Scene


class GenerationRequest(BaseModel):
    """Schema for starting a generation attempt."""

    thread_content: str = Field(..., max_length=50000)
    video_vibe: str | None = None
    timeout: float | None = Field(None, gt=0, le=600, description="Seconds to wait for the completion service")


class GenerationResponse(BaseModel):
    request_id: str
    project_id: str
    video_vibe: str
    scenes: list[Scene]
    credits_remaining: int
    accounting_ok: bool


class DashboardRead(BaseModel):
    """Schema for reading a session's dashboard view."""

    session_id: str
    view: Literal["input", "script"]
    generating: bool
    active_request_id: str | None = None
    scenes: list[Scene] = []
    active_scene: int = 0
    credits: int | None = None
    last_error: str | None = None
