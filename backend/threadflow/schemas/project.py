from __future__ import annotations
"""Pydantic v2 schemas for Project model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ProjectSummary(BaseModel):
    """Schema for the "My Scripts" list."""

    id: str
    title: str
    video_vibe: str
    status: str
    scene_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    """Schema for reading a project with its script."""

    id: str
    user_id: str
    title: str
    thread_content: str
    video_vibe: str
    status: str
    script_data: dict[str, Any] | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
