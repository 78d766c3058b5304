"""Relationship edge model type definitions for database operations."""

from enum import Enum
from typing import TypedDict


class FriendshipStatus(str, Enum):
    """Friendship status values matching database enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RelationshipEdge(TypedDict):
    """Friends table row representation.

    A directed edge: ``user_id``'s view of their relationship to the kitty
    behind ``friend_kitty_hash``. Keyed by (user_id, friend_kitty_hash).
    A mutual friendship is two of these, one owned by each side.
    """

    user_id: str
    friend_kitty_hash: str
    friendship_status: str
    created_at: str
