from __future__ import annotations
"""Profile API — display details and credit balance."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from threadflow.database import get_db
from threadflow.schemas.profile import ProfileRead, ProfileUpdate
from threadflow.services.auth import get_session_context
from threadflow.services.profile_store import ProfileStore
from threadflow.services.sessions import SessionContext

router = APIRouter()


@router.get("/", response_model=ProfileRead)
async def get_profile(
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """The caller's profile; created with starter credits on first visit."""
    return await ProfileStore(db).ensure_profile(ctx.user_id, ctx.email)


@router.patch("/", response_model=ProfileRead)
async def update_profile(
    data: ProfileUpdate,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    store = ProfileStore(db)
    await store.ensure_profile(ctx.user_id, ctx.email)
    return await store.update_profile(
        ctx.user_id,
        display_name=data.display_name,
        avatar_url=data.avatar_url,
    )
