"""Friends leaderboard ranking. Pure functions, no I/O."""

from kitty_social.schemas.friend import RankedProfile
from kitty_social.schemas.profile import ProfileView


def rank(self_profile: ProfileView, friends: list[ProfileView]) -> list[RankedProfile]:
    """Rank a user among their friends by level, then XP.

    The caller is merged in before sorting so their own rank comes out
    right; filter them out afterwards with peers_only if needed. Ranks run
    1..n with no sharing: exact (level, xp) ties keep input order, caller
    first.

    Args:
        self_profile: The viewing user's profile.
        friends: Accepted friends' profiles.

    Returns:
        list[RankedProfile]: Every input entry, best first.
    """
    entries = [self_profile, *friends]
    ordered = sorted(entries, key=lambda p: (-p.level, -p.xp))

    return [
        RankedProfile(
            **profile.model_dump(include=set(ProfileView.model_fields)),
            rank=position,
            is_self=profile.user_id == self_profile.user_id,
        )
        for position, profile in enumerate(ordered, start=1)
    ]


def peers_only(ranked: list[RankedProfile], user_id: str) -> list[RankedProfile]:
    """Drop the viewing user from a ranked list, keeping everyone's ranks."""
    return [entry for entry in ranked if entry.user_id != user_id]


def own_rank(ranked: list[RankedProfile], user_id: str) -> int | None:
    """Get the viewing user's rank, or None if they are not in the list."""
    return next((entry.rank for entry in ranked if entry.user_id == user_id), None)
