from __future__ import annotations
"""Project API — the signed-in user's saved scripts."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from threadflow.database import get_db
from threadflow.errors import ProjectNotFoundError
from threadflow.schemas.project import ProjectRead, ProjectSummary
from threadflow.services.auth import get_session_context
from threadflow.services.project_store import ProjectStore
from threadflow.services.sessions import SessionContext

router = APIRouter()


@router.get("/", response_model=list[ProjectSummary])
async def list_projects(
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's projects ordered by creation date (newest first)."""
    return await ProjectStore(db).list_for_owner(ctx.user_id)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: str,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the caller's projects by ID."""
    try:
        return await ProjectStore(db).get_for_owner(ctx.user_id, project_id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """Delete one of the caller's projects."""
    try:
        await ProjectStore(db).delete_for_owner(ctx.user_id, project_id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
