from __future__ import annotations
"""Pydantic v2 schemas for Profile model."""

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    """Schema for the editable profile fields. Credits are never client-writable."""

    display_name: str | None = Field(None, max_length=255)
    avatar_url: str | None = Field(None, max_length=1024)


class ProfileRead(BaseModel):
    id: str
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    credits: int
    tier: str

    model_config = {"from_attributes": True}
