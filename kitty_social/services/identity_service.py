"""Kitty hash derivation and resolution.

A kitty hash is the shareable handle a user gives to friends. It is derived
once, at onboarding, from a namespaced seed and never re-derived for an
existing profile, so changing the scheme only affects new profiles.

Two schemes exist:

* ``legacy``: the mobile app's 31-multiplier string hash, wrapped
  to a signed 32-bit integer, made positive and rendered in base 36 after a
  ``kitty_`` prefix. Early builds issued the bare signed decimal instead;
  those still resolve and are detected as legacy. Low entropy; distinct
  seeds can collide (``"Aa"`` and ``"BB"`` hash the same). Kept so tokens
  already handed out keep resolving.
* ``sha256``: the first 128 bits of SHA-256 over the seed, hex encoded and
  prefixed with ``k2_`` so both formats can live in the same column.
"""

import hashlib
import logging
import re
from collections import defaultdict
from typing import Iterable

from kitty_social.core.config import Settings, get_settings
from kitty_social.models.profile import Profile
from kitty_social.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

SHA256_TOKEN_PREFIX = "k2_"
LEGACY_TOKEN_PREFIX = "kitty_"
BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

LEGACY_TOKEN_RE = re.compile(r"kitty_[0-9a-z]+")
LEGACY_DECIMAL_TOKEN_RE = re.compile(r"-?[0-9]+")


def legacy_string_hash(value: str) -> int:
    """Hash a string the way the mobile client does.

    Iterates UTF-16 code units computing ``hash = hash * 31 + unit`` in
    32-bit two's complement.
    """
    encoded = value.encode("utf-16-le")
    result = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        result = (result * 31 + unit) & 0xFFFFFFFF
    if result >= 0x80000000:
        result -= 0x100000000
    return result


def to_base36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def legacy_token(seed: str) -> str:
    """Derive a kitty hash with the legacy scheme.

    ``kitty_`` followed by the base 36 absolute value of the string hash,
    e.g. ``kitty_tjxlia``. A hash and its negation map to the same token.
    """
    return f"{LEGACY_TOKEN_PREFIX}{to_base36(abs(legacy_string_hash(seed)))}"


def sha256_token(seed: str) -> str:
    """Derive a collision-resistant kitty hash."""
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return f"{SHA256_TOKEN_PREFIX}{digest[:32]}"


def is_legacy_token(token: str) -> bool:
    """Check whether a kitty hash was minted by the legacy scheme.

    Matches ``kitty_`` base 36 tokens and the bare signed decimal tokens
    issued by early app builds.
    """
    return bool(LEGACY_TOKEN_RE.fullmatch(token) or LEGACY_DECIMAL_TOKEN_RE.fullmatch(token))


class IdentityService:
    """Derives kitty hashes and resolves them back to profiles."""

    def __init__(
        self,
        profiles: ProfileService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize identity service.

        Args:
            profiles: Profile store used to resolve tokens.
            settings: Settings providing the scheme and seed namespace.
        """
        self.profiles = profiles or ProfileService()
        self.settings = settings or get_settings()

    def build_seed(self, user_id: str) -> str:
        """Build the namespaced seed for a user.

        Args:
            user_id: The auth user ID.

        Returns:
            str: Seed that reproduces the same token for the same user.
        """
        return f"{self.settings.identity_seed_namespace}_{user_id}"

    def derive_token(self, seed: str) -> str:
        """Derive a kitty hash from a seed using the configured scheme.

        Deterministic: the same seed always yields the same token.

        Args:
            seed: Namespaced seed, usually from build_seed.

        Returns:
            str: The kitty hash.
        """
        if self.settings.identity_token_scheme == "sha256":
            return sha256_token(seed)
        return legacy_token(seed)

    def legacy_collisions(self, user_ids: Iterable[str]) -> dict[str, list[str]]:
        """Group users whose legacy kitty hashes would collide.

        Args:
            user_ids: Auth user IDs to check.

        Returns:
            dict[str, list[str]]: Legacy token to the users sharing it, only
            for tokens shared by more than one user.
        """
        owners: dict[str, list[str]] = defaultdict(list)
        for user_id in user_ids:
            owners[legacy_token(self.build_seed(user_id))].append(user_id)
        return {token: users for token, users in owners.items() if len(users) > 1}

    async def resolve_token(self, token: str) -> Profile | None:
        """Resolve a kitty hash to its profile.

        A miss is a normal outcome (typo, stale share link) and returns None.

        Args:
            token: The kitty hash.

        Returns:
            Profile | None: The owning profile or None if not found.
        """
        profile = await self.profiles.get_by_token(token)
        if not profile:
            logger.info("Kitty hash %s did not resolve to a profile", token)
        return profile
