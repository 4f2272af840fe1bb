from __future__ import annotations
"""Project ORM model — a generated script together with the thread it came from."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from threadflow.database import Base

TITLE_LENGTH = 50
TITLE_SUFFIX = "..."


class ProjectStatus(str, enum.Enum):
    """Project lifecycle statuses."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def derive_title(thread_content: str) -> str:
    """First 50 characters of the thread plus an ellipsis, whatever its length."""
    return thread_content[:TITLE_LENGTH] + TITLE_SUFFIX


class Project(Base):
    """A persisted script, owned by exactly one user."""

    __tablename__ = "projects"
    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    thread_content: Mapped[str] = mapped_column(Text, nullable=False)
    video_vibe: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProjectStatus.PROCESSING.value
    )
    script_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), index=True
    )

    @property
    def scene_count(self) -> int:
        return len((self.script_data or {}).get("scenes") or [])
