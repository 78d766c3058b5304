"""Database model type definitions."""

from kitty_social.models.profile import Profile, ProfileUpsert
from kitty_social.models.relationship import FriendshipStatus, RelationshipEdge

__all__ = [
    "Profile",
    "ProfileUpsert",
    "FriendshipStatus",
    "RelationshipEdge",
]
