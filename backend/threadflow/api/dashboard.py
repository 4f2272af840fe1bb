from __future__ import annotations
"""Dashboard API — the per-session view the generation workflow updates."""

import dataclasses

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from threadflow.database import get_db
from threadflow.schemas.generation import DashboardRead
from threadflow.services.auth import get_session_context
from threadflow.services.profile_store import ProfileStore
from threadflow.services.sessions import (
    DashboardState,
    SessionContext,
    SessionRegistry,
    get_session_registry,
)

router = APIRouter()


def _read(state: DashboardState) -> DashboardRead:
    return DashboardRead(**dataclasses.asdict(state))


@router.get("/dashboard", response_model=DashboardRead)
async def get_dashboard(
    ctx: SessionContext = Depends(get_session_context),
    registry: SessionRegistry = Depends(get_session_registry),
    db: AsyncSession = Depends(get_db),
):
    """Open (or resume) the session and return its view with a fresh credit count."""
    state = registry.open(ctx.session_id)
    if not state.generating:
        profile = await ProfileStore(db).ensure_profile(ctx.user_id, ctx.email)
        state.credits = profile.credits
    return _read(state)


@router.post("/dashboard/back", response_model=DashboardRead)
async def back_to_input(
    ctx: SessionContext = Depends(get_session_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    return _read(registry.back(ctx.session_id))


@router.post("/dashboard/scenes/{index}", response_model=DashboardRead)
async def select_scene(
    index: int,
    ctx: SessionContext = Depends(get_session_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        return _read(registry.select_scene(ctx.session_id, index))
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/session", status_code=204)
async def close_session(
    ctx: SessionContext = Depends(get_session_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Tear the session down; results still in flight for it are discarded."""
    registry.close(ctx.session_id)
