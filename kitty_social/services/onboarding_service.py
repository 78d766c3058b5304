"""Onboarding: creating a user's kitty profile and minting their kitty hash."""

import logging
from datetime import datetime, timezone

from kitty_social.api.middleware.error_handler import TokenCollisionError
from kitty_social.models.profile import Profile, ProfileUpsert
from kitty_social.services.identity_service import IdentityService
from kitty_social.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


class OnboardingService:
    """Service registering kitty profiles."""

    def __init__(
        self,
        profiles: ProfileService | None = None,
        identity: IdentityService | None = None,
    ) -> None:
        """Initialize onboarding service."""
        self.profiles = profiles or ProfileService()
        self.identity = identity or IdentityService(self.profiles)

    async def register_profile(
        self,
        user_id: str,
        full_name: str | None,
        kitty_name: str,
        kitty_breed_id: str,
    ) -> Profile:
        """Create the user's profile, or refresh its display fields.

        The kitty hash is derived only when the profile is first created;
        re-registering keeps the existing hash, level and XP.

        Args:
            user_id: The auth user ID.
            full_name: Display name from the auth provider.
            kitty_name: Name chosen for the kitty.
            kitty_breed_id: Adopted breed.

        Returns:
            Profile: The stored profile.

        Raises:
            TokenCollisionError: If the derived hash already belongs to another user.
        """
        now = datetime.now(timezone.utc).isoformat()
        existing = await self.profiles.get(user_id)

        if existing:
            return await self.profiles.upsert(
                ProfileUpsert(
                    user_id=user_id,
                    kitty_hash=existing["kitty_hash"],
                    full_name=full_name,
                    kitty_name=kitty_name,
                    kitty_breed_id=kitty_breed_id,
                    updated_at=now,
                )
            )

        kitty_hash = self.identity.derive_token(self.identity.build_seed(user_id))
        owner = await self.profiles.get_by_token(kitty_hash)
        if owner and owner["user_id"] != user_id:
            logger.error("Kitty hash %s for %s collides with %s", kitty_hash, user_id, owner["user_id"])
            raise TokenCollisionError()

        profile = await self.profiles.upsert(
            ProfileUpsert(
                user_id=user_id,
                kitty_hash=kitty_hash,
                full_name=full_name,
                kitty_name=kitty_name,
                kitty_breed_id=kitty_breed_id,
                level=1,
                xp=0,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Registered kitty profile for %s", user_id)
        return profile
