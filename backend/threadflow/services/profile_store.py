from __future__ import annotations
"""Profile/quota accessor — reads and writes one user's profile row.

Pass-through only: the rule that credits never go below zero belongs to
the generation workflow, not here.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from threadflow.config import get_settings
from threadflow.errors import PersistenceError, ProfileNotFoundError
from threadflow.models.profile import Profile

logger = logging.getLogger(__name__)


class ProfileStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_profile(self, owner_id: str) -> Profile | None:
        result = await self.db.execute(select(Profile).where(Profile.user_id == owner_id))
        return result.scalar_one_or_none()

    async def get_profile(self, owner_id: str) -> Profile:
        profile = await self.find_profile(owner_id)
        if profile is None:
            raise ProfileNotFoundError(f"No profile for user {owner_id}")
        return profile

    async def set_credits(self, owner_id: str, new_value: int) -> Profile:
        """Overwrite the credit balance and flush."""
        profile = await self.get_profile(owner_id)
        profile.credits = new_value
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to set credits for %s: %s", owner_id, e)
            raise PersistenceError("Failed to update credits") from e
        return profile

    async def ensure_profile(self, owner_id: str, email: str | None = None) -> Profile:
        """Return the user's profile, provisioning one with starter credits if absent."""
        profile = await self.find_profile(owner_id)
        if profile is not None:
            return profile

        settings = get_settings()
        profile = Profile(
            user_id=owner_id,
            display_name=email.split("@")[0] if email else None,
            credits=settings.DEFAULT_CREDITS,
            tier=settings.DEFAULT_TIER,
        )
        self.db.add(profile)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to create profile") from e
        await self.db.refresh(profile)
        logger.info("Provisioned profile for %s with %d credits", owner_id, profile.credits)
        return profile

    async def update_profile(
        self,
        owner_id: str,
        *,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        profile = await self.get_profile(owner_id)
        if display_name is not None:
            profile.display_name = display_name
        if avatar_url is not None:
            profile.avatar_url = avatar_url
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to update profile") from e
        await self.db.refresh(profile)
        return profile
