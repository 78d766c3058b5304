"""Directed relationship edge data access."""

from supabase import Client

from kitty_social.core.config import get_settings
from kitty_social.core.supabase import execute_query, get_supabase_client
from kitty_social.models.relationship import FriendshipStatus, RelationshipEdge


class RelationshipService:
    """Service for the friends table.

    Each row is one user's directed edge toward a kitty hash, keyed by
    (user_id, friend_kitty_hash). Writes upsert on that key so a pair never
    holds more than one row.
    """

    def __init__(self, client: Client | None = None) -> None:
        """Initialize relationship service with Supabase client."""
        self.client = client or get_supabase_client()
        self.table = get_settings().friends_table

    async def get_edge(self, owner_user_id: str, peer_kitty_hash: str) -> RelationshipEdge | None:
        """Get the edge a user owns toward a kitty hash, in any status.

        Args:
            owner_user_id: User who owns the edge.
            peer_kitty_hash: Kitty hash the edge points at.

        Returns:
            RelationshipEdge | None: The edge or None if not found.
        """
        response = execute_query(
            self.client.table(self.table)
            .select("*")
            .eq("user_id", owner_user_id)
            .eq("friend_kitty_hash", peer_kitty_hash)
            .limit(1),
            "get edge",
        )

        return response.data[0] if response.data else None

    async def put_edge(self, edge: RelationshipEdge) -> RelationshipEdge:
        """Create or replace an edge by its composite key.

        Args:
            edge: The full edge row.

        Returns:
            RelationshipEdge: The stored edge.
        """
        response = execute_query(
            self.client.table(self.table).upsert(
                dict(edge),
                on_conflict="user_id,friend_kitty_hash",
            ),
            "put edge",
        )

        return response.data[0] if response.data else edge

    async def delete_edge(self, owner_user_id: str, peer_kitty_hash: str) -> None:
        """Delete an edge. Deleting a missing edge is a no-op."""
        execute_query(
            self.client.table(self.table)
            .delete()
            .eq("user_id", owner_user_id)
            .eq("friend_kitty_hash", peer_kitty_hash),
            "delete edge",
        )

    async def list_edges(
        self,
        owner_user_id: str,
        status: FriendshipStatus,
    ) -> list[RelationshipEdge]:
        """List edges a user owns with a given status, oldest first."""
        response = execute_query(
            self.client.table(self.table)
            .select("*")
            .eq("user_id", owner_user_id)
            .eq("friendship_status", status.value)
            .order("created_at"),
            "list edges",
        )

        return response.data or []

    async def list_edges_by_peer_token(
        self,
        peer_kitty_hash: str,
        status: FriendshipStatus,
    ) -> list[RelationshipEdge]:
        """List edges from any owner pointing at a kitty hash.

        With ``PENDING`` this is the incoming friend request query.
        """
        response = execute_query(
            self.client.table(self.table)
            .select("*")
            .eq("friend_kitty_hash", peer_kitty_hash)
            .eq("friendship_status", status.value)
            .order("created_at"),
            "list edges by peer",
        )

        return response.data or []

    async def count_edges_by_peer_token(
        self,
        peer_kitty_hash: str,
        status: FriendshipStatus,
    ) -> int:
        """Count edges pointing at a kitty hash without fetching rows."""
        response = execute_query(
            self.client.table(self.table)
            .select("*", count="exact", head=True)
            .eq("friend_kitty_hash", peer_kitty_hash)
            .eq("friendship_status", status.value),
            "count edges by peer",
        )

        return response.count or 0
