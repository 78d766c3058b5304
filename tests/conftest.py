"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "{}")

from kitty_social.api.middleware.error_handler import StoreUnavailableError  # noqa: E402
from kitty_social.models.relationship import FriendshipStatus  # noqa: E402


class InMemoryProfileService:
    """Profile store backed by a dict, matching ProfileService's interface."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.unavailable = False

    def _check(self) -> None:
        if self.unavailable:
            raise StoreUnavailableError()

    def add(self, user_id: str, kitty_hash: str, level: int = 1, xp: int = 0, **extra: Any) -> dict[str, Any]:
        row = {
            "user_id": user_id,
            "kitty_hash": kitty_hash,
            "full_name": extra.get("full_name", f"User {user_id}"),
            "kitty_name": extra.get("kitty_name", f"Kitty {user_id}"),
            "kitty_breed_id": extra.get("kitty_breed_id", "tabby"),
            "level": level,
            "xp": xp,
            "created_at": "2026-01-01T00:00:00+00:00",
            "updated_at": "2026-01-01T00:00:00+00:00",
        }
        self.rows[user_id] = row
        return dict(row)

    async def get(self, user_id: str) -> dict[str, Any] | None:
        self._check()
        row = self.rows.get(user_id)
        return dict(row) if row else None

    async def get_by_token(self, kitty_hash: str) -> dict[str, Any] | None:
        self._check()
        for row in self.rows.values():
            if row["kitty_hash"] == kitty_hash:
                return dict(row)
        return None

    async def get_own_token(self, user_id: str) -> str | None:
        profile = await self.get(user_id)
        return profile["kitty_hash"] if profile else None

    async def get_many(self, user_ids: list[str]) -> list[dict[str, Any]]:
        self._check()
        return [dict(self.rows[uid]) for uid in dict.fromkeys(user_ids) if uid in self.rows]

    async def get_many_by_tokens(self, kitty_hashes: list[str]) -> list[dict[str, Any]]:
        self._check()
        wanted = set(kitty_hashes)
        return [dict(row) for row in self.rows.values() if row["kitty_hash"] in wanted]

    async def upsert(self, profile: dict[str, Any]) -> dict[str, Any]:
        self._check()
        merged = {**self.rows.get(profile["user_id"], {}), **profile}
        self.rows[profile["user_id"]] = merged
        return dict(merged)


class InMemoryRelationshipService:
    """Edge store backed by a dict keyed on (owner, peer hash).

    Writes to edges owned by a user in ``broken_owners`` fail, which is how
    tests make a mirror write fail after the primary write succeeded.
    """

    def __init__(self) -> None:
        self.edges: dict[tuple[str, str], dict[str, Any]] = {}
        self.broken_owners: set[str] = set()

    def _check_write(self, owner_user_id: str) -> None:
        if owner_user_id in self.broken_owners:
            raise StoreUnavailableError()

    async def get_edge(self, owner_user_id: str, peer_kitty_hash: str) -> dict[str, Any] | None:
        edge = self.edges.get((owner_user_id, peer_kitty_hash))
        return dict(edge) if edge else None

    async def put_edge(self, edge: dict[str, Any]) -> dict[str, Any]:
        self._check_write(edge["user_id"])
        self.edges[(edge["user_id"], edge["friend_kitty_hash"])] = dict(edge)
        return dict(edge)

    async def delete_edge(self, owner_user_id: str, peer_kitty_hash: str) -> None:
        self._check_write(owner_user_id)
        self.edges.pop((owner_user_id, peer_kitty_hash), None)

    async def list_edges(self, owner_user_id: str, status: FriendshipStatus) -> list[dict[str, Any]]:
        return [
            dict(edge)
            for (owner, _), edge in self.edges.items()
            if owner == owner_user_id and edge["friendship_status"] == status.value
        ]

    async def list_edges_by_peer_token(self, peer_kitty_hash: str, status: FriendshipStatus) -> list[dict[str, Any]]:
        return [
            dict(edge)
            for (_, peer), edge in self.edges.items()
            if peer == peer_kitty_hash and edge["friendship_status"] == status.value
        ]

    async def count_edges_by_peer_token(self, peer_kitty_hash: str, status: FriendshipStatus) -> int:
        return len(await self.list_edges_by_peer_token(peer_kitty_hash, status))

    def edges_owned_by(self, owner_user_id: str) -> list[dict[str, Any]]:
        return [edge for (owner, _), edge in self.edges.items() if owner == owner_user_id]


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache."""
    from kitty_social.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("kitty_social.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def profile_store() -> InMemoryProfileService:
    """Empty in-memory profile store."""
    return InMemoryProfileService()


@pytest.fixture
def edge_store() -> InMemoryRelationshipService:
    """Empty in-memory relationship store."""
    return InMemoryRelationshipService()


class ActingUser:
    """Mutable stand-in for the authenticated caller in route tests."""

    def __init__(self, user_id: str = "u1") -> None:
        self.user_id = user_id


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from kitty_social.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def acting_user() -> ActingUser:
    """Caller identity used by api_client; reassign user_id to switch users."""
    return ActingUser()


@pytest.fixture
def api_client(
    profile_store: InMemoryProfileService,
    edge_store: InMemoryRelationshipService,
    acting_user: ActingUser,
) -> Generator[TestClient, None, None]:
    """Provide a test client with auth and stores replaced by in-memory fakes.

    Yields:
        TestClient: FastAPI test client.
    """
    from kitty_social.api.deps import (
        get_current_user,
        get_friend_service,
        get_onboarding_service,
        get_profile_service,
    )
    from kitty_social.main import app
    from kitty_social.schemas.auth import UserContext
    from kitty_social.services.friend_service import FriendService
    from kitty_social.services.onboarding_service import OnboardingService

    app.dependency_overrides[get_current_user] = lambda: UserContext(user_id=acting_user.user_id)
    app.dependency_overrides[get_profile_service] = lambda: profile_store
    app.dependency_overrides[get_friend_service] = lambda: FriendService(
        profiles=profile_store, relationships=edge_store
    )
    app.dependency_overrides[get_onboarding_service] = lambda: OnboardingService(profiles=profile_store)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
