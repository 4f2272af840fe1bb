from __future__ import annotations
"""Project store — every query is scoped to the owning user."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from threadflow.errors import PersistenceError, ProjectNotFoundError
from threadflow.models.project import Project, ProjectStatus, derive_title
from threadflow.schemas.script import Script

logger = logging.getLogger(__name__)


class ProjectStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        owner_id: str,
        thread_content: str,
        vibe: str,
        script: Script,
        *,
        status: ProjectStatus = ProjectStatus.COMPLETED,
    ) -> Project:
        project = Project(
            user_id=owner_id,
            title=derive_title(thread_content),
            thread_content=thread_content,
            video_vibe=vibe,
            status=status.value,
            script_data=script.model_dump(),
        )
        self.db.add(project)
        try:
            await self.db.flush()
            await self.db.refresh(project)
        except SQLAlchemyError as e:
            logger.error("Failed to insert project for %s: %s", owner_id, e)
            raise PersistenceError("Failed to save your script") from e
        return project

    async def list_for_owner(self, owner_id: str) -> list[Project]:
        """Owner's projects, newest first."""
        result = await self.db.execute(
            select(Project)
            .where(Project.user_id == owner_id)
            .order_by(Project.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_for_owner(self, owner_id: str, project_id: str) -> Project:
        project = await self.db.get(Project, project_id)
        if project is None or project.user_id != owner_id:
            raise ProjectNotFoundError("Project not found")
        return project

    async def delete_for_owner(self, owner_id: str, project_id: str) -> None:
        project = await self.get_for_owner(owner_id, project_id)
        await self.db.delete(project)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to delete script") from e
        logger.info("Deleted project %s for %s", project_id, owner_id)
