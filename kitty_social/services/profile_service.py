"""Kitty profile data access."""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from kitty_social.api.middleware.error_handler import NotFoundError, ValidationError
from kitty_social.core.config import get_settings
from kitty_social.core.supabase import execute_query, get_supabase_client
from kitty_social.models.profile import Profile, ProfileUpsert

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


class ProfileService:
    """Service for reading and writing kitty profiles."""

    def __init__(self, client: Client | None = None) -> None:
        """Initialize profile service with Supabase client."""
        self.client = client or get_supabase_client()
        self.table = get_settings().profiles_table

    async def get(self, user_id: str) -> Profile | None:
        """Get a profile by user ID.

        Args:
            user_id: The auth user ID.

        Returns:
            Profile | None: The profile data or None if not found.
        """
        response = execute_query(
            self.client.table(self.table)
            .select("*")
            .eq("user_id", user_id)
            .limit(1),
            "get profile",
        )

        return response.data[0] if response.data else None

    async def get_by_token(self, kitty_hash: str) -> Profile | None:
        """Get a profile by its kitty hash.

        Args:
            kitty_hash: The identity token.

        Returns:
            Profile | None: The profile data or None if not found.
        """
        response = execute_query(
            self.client.table(self.table)
            .select("*")
            .eq("kitty_hash", kitty_hash)
            .limit(1),
            "get profile by hash",
        )

        return response.data[0] if response.data else None

    async def get_own_token(self, user_id: str) -> str | None:
        """Get the caller's kitty hash, or None before onboarding."""
        profile = await self.get(user_id)
        return profile["kitty_hash"] if profile else None

    async def get_many(self, user_ids: list[str]) -> list[Profile]:
        """Get profiles for a batch of user IDs.

        Missing users are skipped; a partial miss is not an error.

        Args:
            user_ids: Auth user IDs.

        Returns:
            list[Profile]: The profiles found, in no particular order.
        """
        ids = _unique(user_ids)
        if not ids:
            return []

        response = execute_query(
            self.client.table(self.table).select("*").in_("user_id", ids),
            "get profiles",
        )

        return response.data or []

    async def get_many_by_tokens(self, kitty_hashes: list[str]) -> list[Profile]:
        """Get profiles for a batch of kitty hashes.

        Args:
            kitty_hashes: Identity tokens.

        Returns:
            list[Profile]: The profiles found, in no particular order.
        """
        tokens = _unique(kitty_hashes)
        if not tokens:
            return []

        response = execute_query(
            self.client.table(self.table).select("*").in_("kitty_hash", tokens),
            "get profiles by hash",
        )

        return response.data or []

    async def upsert(self, profile: ProfileUpsert) -> Profile:
        """Create or replace a profile keyed on user ID.

        Writing the same value twice leaves the row as writing it once.

        Args:
            profile: Full or partial row including ``user_id``.

        Returns:
            Profile: The stored row.
        """
        response = execute_query(
            self.client.table(self.table).upsert(dict(profile), on_conflict="user_id"),
            "upsert profile",
        )

        return response.data[0] if response.data else profile

    async def _update(self, user_id: str, changes: dict[str, Any], operation: str) -> Profile:
        changes = {**changes, "updated_at": _now()}
        response = execute_query(
            self.client.table(self.table).update(changes).eq("user_id", user_id),
            operation,
        )

        if not response.data:
            raise NotFoundError("Profile not found")
        return response.data[0]

    async def update_kitty_name(self, user_id: str, kitty_name: str) -> Profile:
        """Rename the user's kitty. The kitty hash is left untouched."""
        return await self._update(user_id, {"kitty_name": kitty_name}, "update kitty name")

    async def update_kitty_breed(self, user_id: str, kitty_breed_id: str) -> Profile:
        """Change the user's kitty breed."""
        logger.info("Updating kitty breed for user %s to %s", user_id, kitty_breed_id)
        return await self._update(user_id, {"kitty_breed_id": kitty_breed_id}, "update kitty breed")

    async def update_stats(self, user_id: str, level: int, xp: int) -> Profile:
        """Refresh the denormalized level and XP pushed by the gamification side.

        Progress only moves forward: a (level, xp) pair that sorts below the
        stored one is refused. XP may drop when the level rises.

        Args:
            user_id: The auth user ID.
            level: New level.
            xp: New experience points.

        Returns:
            Profile: The updated profile.

        Raises:
            NotFoundError: If the user has no profile.
            ValidationError: If the update would move progress backwards.
        """
        current = await self.get(user_id)
        if not current:
            raise NotFoundError("Profile not found")

        if (level, xp) < (current.get("level", 1), current.get("xp", 0)):
            raise ValidationError(
                "Level and XP cannot decrease",
                details=[{
                    "loc": ["body", "level"],
                    "msg": f"current is level {current.get('level')} with {current.get('xp')} xp",
                    "type": "value_error",
                }],
            )

        return await self._update(user_id, {"level": level, "xp": xp}, "update kitty stats")
