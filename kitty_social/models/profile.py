"""Kitty profile model type definitions for database operations."""

from typing import TypedDict


class Profile(TypedDict):
    """Kitty profile table row representation.

    One row per user. ``kitty_hash`` is the public "find me" handle and is
    unique across all rows. ``level`` and ``xp`` are owned by the
    gamification side and only refreshed here.
    """

    user_id: str
    kitty_hash: str
    full_name: str | None
    kitty_name: str | None
    kitty_breed_id: str | None
    level: int
    xp: int
    created_at: str
    updated_at: str


class ProfileUpsert(TypedDict, total=False):
    """Columns written by an upsert keyed on ``user_id``."""

    user_id: str
    kitty_hash: str
    full_name: str | None
    kitty_name: str | None
    kitty_breed_id: str | None
    level: int
    xp: int
    created_at: str
    updated_at: str
