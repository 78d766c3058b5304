"""Friend request lifecycle.

A friendship is two directed edges, one owned by each user. Per pair, the
requester's edge moves through::

    (none) --send--> pending --accept--> accepted --remove--> (none)
                        |
                        +--reject--> rejected

Sending writes only the requester's edge; the target sees it through the
incoming-request query. Accepting updates the requester's edge and then
writes the accepter's mirror edge. The two writes are separate round trips
with no transaction around them, issued strictly in order, so a failure
always leaves the first write in place and the second missing.
"""

import logging
from datetime import datetime, timezone

from kitty_social.api.middleware.error_handler import (
    NotFoundError,
    PartialMirrorFailureError,
    RequestNotFoundError,
    SelfFriendError,
    StoreUnavailableError,
    UnknownTargetError,
)
from kitty_social.models.profile import Profile
from kitty_social.models.relationship import FriendshipStatus, RelationshipEdge
from kitty_social.schemas.friend import RepairReport, SendOutcome
from kitty_social.schemas.profile import FriendProfile
from kitty_social.services.identity_service import IdentityService
from kitty_social.services.profile_service import ProfileService
from kitty_social.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)


def _edge(
    owner_user_id: str,
    peer_kitty_hash: str,
    status: FriendshipStatus,
    created_at: str | None = None,
) -> RelationshipEdge:
    return RelationshipEdge(
        user_id=owner_user_id,
        friend_kitty_hash=peer_kitty_hash,
        friendship_status=status.value,
        created_at=created_at or datetime.now(timezone.utc).isoformat(),
    )


def _annotate(
    profiles: list[Profile],
    order: list[str],
    key: str,
    status: FriendshipStatus,
) -> list[FriendProfile]:
    """Attach a status to profiles, ordered like the edges they came from."""
    by_key = {profile[key]: profile for profile in profiles}
    return [
        FriendProfile(**by_key[value], status=status)
        for value in dict.fromkeys(order)
        if value in by_key
    ]


class FriendService:
    """Service orchestrating friend requests over the profile and edge stores."""

    def __init__(
        self,
        profiles: ProfileService | None = None,
        relationships: RelationshipService | None = None,
        identity: IdentityService | None = None,
    ) -> None:
        """Initialize friend service.

        Args:
            profiles: Profile store.
            relationships: Relationship edge store.
            identity: Kitty hash resolver; built over ``profiles`` if omitted.
        """
        self.profiles = profiles or ProfileService()
        self.relationships = relationships or RelationshipService()
        self.identity = identity or IdentityService(self.profiles)

    async def _require_own_token(self, user_id: str) -> str:
        token = await self.profiles.get_own_token(user_id)
        if not token:
            raise NotFoundError("Profile not found. Finish adopting your kitty first.")
        return token

    async def _find_pending_request(self, requester_user_id: str, own_token: str) -> RelationshipEdge:
        edge = await self.relationships.get_edge(requester_user_id, own_token)
        if not edge or edge["friendship_status"] != FriendshipStatus.PENDING.value:
            raise RequestNotFoundError()
        return edge

    async def send(self, requester_user_id: str, target_kitty_hash: str) -> tuple[SendOutcome, Profile]:
        """Send a friend request to the owner of a kitty hash.

        Sending again for a pair that already has an edge, in any status,
        succeeds without writing anything.

        Args:
            requester_user_id: The user sending the request.
            target_kitty_hash: The kitty hash the user was given.

        Returns:
            tuple: Whether a request was created, and the target profile.

        Raises:
            UnknownTargetError: If the hash resolves to no profile.
            SelfFriendError: If the hash is the requester's own.
        """
        target = await self.identity.resolve_token(target_kitty_hash)
        if not target:
            raise UnknownTargetError()

        if target["user_id"] == requester_user_id:
            raise SelfFriendError()

        existing = await self.relationships.get_edge(requester_user_id, target_kitty_hash)
        if existing:
            logger.info(
                "Friend request %s -> %s already exists (%s)",
                requester_user_id,
                target_kitty_hash,
                existing["friendship_status"],
            )
            return SendOutcome.ALREADY_RELATED, target

        await self.relationships.put_edge(
            _edge(requester_user_id, target_kitty_hash, FriendshipStatus.PENDING)
        )
        logger.info("Friend request sent: %s -> %s", requester_user_id, target_kitty_hash)
        return SendOutcome.CREATED, target

    async def accept(self, accepter_user_id: str, requester_user_id: str) -> None:
        """Accept a pending friend request.

        Args:
            accepter_user_id: The user the request was sent to.
            requester_user_id: The user who sent it.

        Raises:
            RequestNotFoundError: If no pending request exists. After a
                retried accept this may mean the first attempt succeeded.
            PartialMirrorFailureError: If the requester's edge was accepted
                but the accepter's mirror edge could not be written.
        """
        own_token = await self._require_own_token(accepter_user_id)
        request = await self._find_pending_request(requester_user_id, own_token)

        await self.relationships.put_edge(
            _edge(requester_user_id, own_token, FriendshipStatus.ACCEPTED, request.get("created_at"))
        )

        try:
            requester_token = await self.profiles.get_own_token(requester_user_id)
            if not requester_token:
                logger.warning("Requester %s has no kitty hash; mirror edge not written", requester_user_id)
                raise PartialMirrorFailureError(operation="accept")

            await self.relationships.put_edge(
                _edge(accepter_user_id, requester_token, FriendshipStatus.ACCEPTED)
            )
        except StoreUnavailableError as e:
            logger.warning(
                "Accepted %s -> %s but mirror write failed: %s",
                requester_user_id,
                accepter_user_id,
                e.message,
            )
            raise PartialMirrorFailureError(operation="accept") from e

        logger.info("Friend request accepted: %s -> %s", requester_user_id, accepter_user_id)

    async def reject(self, rejecter_user_id: str, requester_user_id: str) -> None:
        """Reject a pending friend request. Rejection is terminal.

        Raises:
            RequestNotFoundError: If no pending request exists.
        """
        own_token = await self._require_own_token(rejecter_user_id)
        request = await self._find_pending_request(requester_user_id, own_token)

        await self.relationships.put_edge(
            _edge(requester_user_id, own_token, FriendshipStatus.REJECTED, request.get("created_at"))
        )
        logger.info("Friend request rejected: %s -> %s", requester_user_id, rejecter_user_id)

    async def remove(self, remover_user_id: str, friend_kitty_hash: str) -> None:
        """Remove a friend, or withdraw a request, from both sides.

        The remover's own edge is deleted first and is authoritative for
        their view. The friend's mirror is deleted best-effort; an unknown
        hash still counts as success. Retrying after a partial failure is
        safe.

        Raises:
            StoreUnavailableError: If the remover's own edge could not be deleted.
            PartialMirrorFailureError: If the friend's mirror edge could not be deleted.
        """
        await self.relationships.delete_edge(remover_user_id, friend_kitty_hash)

        try:
            friend = await self.profiles.get_by_token(friend_kitty_hash)
            if not friend:
                logger.info("Removed edge toward unknown kitty hash %s", friend_kitty_hash)
                return

            own_token = await self.profiles.get_own_token(remover_user_id)
            if not own_token:
                return

            await self.relationships.delete_edge(friend["user_id"], own_token)
        except StoreUnavailableError as e:
            logger.warning(
                "Removed %s -> %s but mirror delete failed: %s",
                remover_user_id,
                friend_kitty_hash,
                e.message,
            )
            raise PartialMirrorFailureError(operation="remove") from e

        logger.info("Friend removed: %s -x- %s", remover_user_id, friend_kitty_hash)

    async def list_incoming_requests(self, user_id: str) -> list[FriendProfile]:
        """List profiles with a pending request toward the user."""
        own_token = await self.profiles.get_own_token(user_id)
        if not own_token:
            return []

        edges = await self.relationships.list_edges_by_peer_token(own_token, FriendshipStatus.PENDING)
        if not edges:
            return []

        requester_ids = [edge["user_id"] for edge in edges]
        profiles = await self.profiles.get_many(requester_ids)
        return _annotate(profiles, requester_ids, "user_id", FriendshipStatus.PENDING)

    async def list_outgoing_requests(self, user_id: str) -> list[FriendProfile]:
        """List profiles the user has a pending request toward."""
        edges = await self.relationships.list_edges(user_id, FriendshipStatus.PENDING)
        tokens = [edge["friend_kitty_hash"] for edge in edges]
        profiles = await self.profiles.get_many_by_tokens(tokens)
        return _annotate(profiles, tokens, "kitty_hash", FriendshipStatus.PENDING)

    async def list_friends(self, user_id: str) -> list[FriendProfile]:
        """List the user's accepted friends, as seen from their own edges."""
        edges = await self.relationships.list_edges(user_id, FriendshipStatus.ACCEPTED)
        tokens = [edge["friend_kitty_hash"] for edge in edges]
        profiles = await self.profiles.get_many_by_tokens(tokens)
        return _annotate(profiles, tokens, "kitty_hash", FriendshipStatus.ACCEPTED)

    async def get_request_count(self, user_id: str) -> int:
        """Count pending incoming requests, for badge polling."""
        own_token = await self.profiles.get_own_token(user_id)
        if not own_token:
            return 0
        return await self.relationships.count_edges_by_peer_token(own_token, FriendshipStatus.PENDING)

    async def repair_relationships(self, user_id: str, adopt_incoming: bool = False) -> RepairReport:
        """Find one-sided friendships and optionally complete the caller's side.

        Only edges owned by the caller are ever written; nothing is deleted.
        A partially failed accept and a partially failed remove leave the
        same rows (one accepted edge, no mirror), so only the owner of the
        missing side can say which one happened.

        Accepted edges the caller owns whose friend has no accepted edge
        back are reported in ``unmirrored``. The friend completes their
        side by running their own repair with ``adopt_incoming``. With
        ``adopt_incoming`` the caller writes their own accepted edge toward
        everyone holding an accepted edge toward them, which clients pass
        after a partially failed accept.

        Args:
            user_id: The user whose friendships to reconcile.
            adopt_incoming: Also write the caller's side of accepted
                edges that point at them.

        Returns:
            RepairReport: What was checked, found and written.
        """
        own_token = await self._require_own_token(user_id)
        report = RepairReport()

        owned = await self.relationships.list_edges(user_id, FriendshipStatus.ACCEPTED)
        owned_tokens = {edge["friend_kitty_hash"] for edge in owned}
        peers = {
            profile["kitty_hash"]: profile
            for profile in await self.profiles.get_many_by_tokens(list(owned_tokens))
        }

        for edge in owned:
            report.checked += 1
            peer = peers.get(edge["friend_kitty_hash"])
            if not peer:
                report.unresolved.append(edge["friend_kitty_hash"])
                continue

            mirror = await self.relationships.get_edge(peer["user_id"], own_token)
            if not mirror or mirror["friendship_status"] != FriendshipStatus.ACCEPTED.value:
                report.unmirrored.append(edge["friend_kitty_hash"])

        if adopt_incoming:
            incoming = await self.relationships.list_edges_by_peer_token(own_token, FriendshipStatus.ACCEPTED)
            owners = await self.profiles.get_many([edge["user_id"] for edge in incoming])
            for owner in owners:
                report.checked += 1
                if owner["kitty_hash"] in owned_tokens:
                    continue

                existing = await self.relationships.get_edge(user_id, owner["kitty_hash"])
                if existing and existing["friendship_status"] != FriendshipStatus.PENDING.value:
                    continue

                await self.relationships.put_edge(_edge(user_id, owner["kitty_hash"], FriendshipStatus.ACCEPTED))
                report.own_mirrors_written += 1

        if report.unmirrored:
            logger.info("%s has %d friendships missing the friend's side", user_id, len(report.unmirrored))
        if report.own_mirrors_written:
            logger.warning("Repaired friendships for %s: %d own mirrors written", user_id, report.own_mirrors_written)
        return report
