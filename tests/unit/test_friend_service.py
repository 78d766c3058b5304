"""Unit tests for FriendService."""

import pytest

from kitty_social.api.middleware.error_handler import (
    NotFoundError,
    PartialMirrorFailureError,
    RequestNotFoundError,
    SelfFriendError,
    UnknownTargetError,
)
from kitty_social.models.relationship import FriendshipStatus
from kitty_social.schemas.friend import SendOutcome
from kitty_social.services.friend_service import FriendService


@pytest.fixture
def friend_service(profile_store, edge_store) -> FriendService:
    """Create FriendService over in-memory stores with three users."""
    profile_store.add("u1", "tok-u1", level=3, xp=40)
    profile_store.add("u2", "tok-u2", level=3, xp=55)
    profile_store.add("u3", "tok-u3", level=5, xp=10)
    return FriendService(profiles=profile_store, relationships=edge_store)


async def _befriend(service: FriendService, requester: str, target: str, target_token: str) -> None:
    await service.send(requester, target_token)
    await service.accept(target, requester)


def _friend_ids(friends) -> set[str]:
    return {friend.user_id for friend in friends}


class TestSend:
    """Tests for send method."""

    @pytest.mark.asyncio
    async def test_writes_single_pending_edge(self, friend_service: FriendService, edge_store) -> None:
        """Test that sending writes only the requester's pending edge."""
        outcome, target = await friend_service.send("u1", "tok-u2")

        assert outcome == SendOutcome.CREATED
        assert target["user_id"] == "u2"
        assert edge_store.edges[("u1", "tok-u2")]["friendship_status"] == "pending"
        assert edge_store.edges_owned_by("u2") == []

    @pytest.mark.asyncio
    async def test_second_send_is_idempotent(self, friend_service: FriendService, edge_store) -> None:
        """Test that sending twice succeeds and leaves exactly one edge."""
        await friend_service.send("u1", "tok-u2")
        outcome, _ = await friend_service.send("u1", "tok-u2")

        assert outcome == SendOutcome.ALREADY_RELATED
        owned = [e for e in edge_store.edges_owned_by("u1") if e["friend_kitty_hash"] == "tok-u2"]
        assert len(owned) == 1

    @pytest.mark.asyncio
    async def test_send_after_rejection_does_not_reopen(self, friend_service: FriendService, edge_store) -> None:
        """Test that a rejected edge is left alone by a new send."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.reject("u2", "u1")

        outcome, _ = await friend_service.send("u1", "tok-u2")

        assert outcome == SendOutcome.ALREADY_RELATED
        assert edge_store.edges[("u1", "tok-u2")]["friendship_status"] == "rejected"

    @pytest.mark.asyncio
    async def test_unknown_hash_raises(self, friend_service: FriendService, edge_store) -> None:
        """Test that an unresolvable hash raises UnknownTargetError."""
        with pytest.raises(UnknownTargetError):
            await friend_service.send("u1", "tok-nobody")

        assert edge_store.edges == {}

    @pytest.mark.asyncio
    async def test_own_hash_raises_self_friend(self, friend_service: FriendService, edge_store) -> None:
        """Test that sending to one's own hash fails and writes nothing."""
        with pytest.raises(SelfFriendError):
            await friend_service.send("u1", "tok-u1")

        assert edge_store.edges == {}


class TestAccept:
    """Tests for accept method."""

    @pytest.mark.asyncio
    async def test_both_sides_become_friends(self, friend_service: FriendService, edge_store) -> None:
        """Test that a full accept makes the friendship visible to both users."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.accept("u2", "u1")

        assert edge_store.edges[("u1", "tok-u2")]["friendship_status"] == "accepted"
        assert edge_store.edges[("u2", "tok-u1")]["friendship_status"] == "accepted"
        assert "u2" in _friend_ids(await friend_service.list_friends("u1"))
        assert "u1" in _friend_ids(await friend_service.list_friends("u2"))

    @pytest.mark.asyncio
    async def test_without_request_raises(self, friend_service: FriendService) -> None:
        """Test that accepting a request that was never sent fails."""
        with pytest.raises(RequestNotFoundError):
            await friend_service.accept("u2", "u1")

    @pytest.mark.asyncio
    async def test_retry_after_success_raises_request_not_found(self, friend_service: FriendService) -> None:
        """Test that a retried accept no longer finds a pending request."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.accept("u2", "u1")

        with pytest.raises(RequestNotFoundError):
            await friend_service.accept("u2", "u1")

    @pytest.mark.asyncio
    async def test_mirror_failure_is_partial(self, friend_service: FriendService, edge_store) -> None:
        """Test that a failed mirror write leaves the requester's side accepted."""
        await friend_service.send("u1", "tok-u2")
        edge_store.broken_owners.add("u2")

        with pytest.raises(PartialMirrorFailureError) as exc_info:
            await friend_service.accept("u2", "u1")

        assert exc_info.value.operation == "accept"
        assert edge_store.edges[("u1", "tok-u2")]["friendship_status"] == "accepted"
        assert ("u2", "tok-u1") not in edge_store.edges

    @pytest.mark.asyncio
    async def test_accepter_without_profile_raises(self, friend_service: FriendService) -> None:
        """Test that a user who never onboarded cannot accept."""
        with pytest.raises(NotFoundError):
            await friend_service.accept("ghost", "u1")

    @pytest.mark.asyncio
    async def test_crossed_requests_end_accepted(self, friend_service: FriendService, edge_store) -> None:
        """Test that accepting while holding an outgoing request upgrades it."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.send("u2", "tok-u1")

        await friend_service.accept("u2", "u1")

        assert edge_store.edges[("u2", "tok-u1")]["friendship_status"] == "accepted"
        assert len(edge_store.edges_owned_by("u2")) == 1


class TestReject:
    """Tests for reject method."""

    @pytest.mark.asyncio
    async def test_reject_is_terminal(self, friend_service: FriendService, edge_store) -> None:
        """Test that after rejection neither side is friends and accept fails."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.reject("u2", "u1")

        assert edge_store.edges[("u1", "tok-u2")]["friendship_status"] == "rejected"
        assert edge_store.edges_owned_by("u2") == []
        assert await friend_service.list_friends("u1") == []
        assert await friend_service.list_friends("u2") == []

        with pytest.raises(RequestNotFoundError):
            await friend_service.accept("u2", "u1")

    @pytest.mark.asyncio
    async def test_rejected_request_leaves_incoming_list(self, friend_service: FriendService) -> None:
        """Test that a rejected request is no longer listed as incoming."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.reject("u2", "u1")

        assert await friend_service.list_incoming_requests("u2") == []


class TestRemove:
    """Tests for remove method."""

    @pytest.mark.asyncio
    async def test_removes_both_edges(self, friend_service: FriendService, edge_store) -> None:
        """Test that removal deletes the remover's edge and the mirror."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")

        await friend_service.remove("u1", "tok-u2")

        assert edge_store.edges == {}

    @pytest.mark.asyncio
    async def test_remover_side_wins_when_mirror_fails(self, friend_service: FriendService, edge_store) -> None:
        """Test that the remover no longer sees the friend even if the mirror delete fails."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")
        edge_store.broken_owners.add("u2")

        with pytest.raises(PartialMirrorFailureError):
            await friend_service.remove("u1", "tok-u2")

        assert await friend_service.list_friends("u1") == []
        assert ("u2", "tok-u1") in edge_store.edges

    @pytest.mark.asyncio
    async def test_retry_after_partial_failure_completes(self, friend_service: FriendService, edge_store) -> None:
        """Test that retrying a partially failed remove cleans up the mirror."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")
        edge_store.broken_owners.add("u2")
        with pytest.raises(PartialMirrorFailureError):
            await friend_service.remove("u1", "tok-u2")

        edge_store.broken_owners.clear()
        await friend_service.remove("u1", "tok-u2")

        assert edge_store.edges == {}

    @pytest.mark.asyncio
    async def test_unknown_friend_hash_still_succeeds(self, friend_service: FriendService, edge_store) -> None:
        """Test that an edge toward a vanished profile is removed without error."""
        edge_store.edges[("u1", "tok-gone")] = {
            "user_id": "u1",
            "friend_kitty_hash": "tok-gone",
            "friendship_status": "accepted",
            "created_at": "2026-01-01T00:00:00+00:00",
        }

        await friend_service.remove("u1", "tok-gone")

        assert edge_store.edges == {}

    @pytest.mark.asyncio
    async def test_withdraws_pending_request(self, friend_service: FriendService) -> None:
        """Test that removing a pending request withdraws it."""
        await friend_service.send("u1", "tok-u2")

        await friend_service.remove("u1", "tok-u2")

        assert await friend_service.list_incoming_requests("u2") == []


class TestListing:
    """Tests for the list and count methods."""

    @pytest.mark.asyncio
    async def test_incoming_requests_annotated_pending(self, friend_service: FriendService) -> None:
        """Test that incoming requests resolve to requester profiles marked pending."""
        await friend_service.send("u1", "tok-u3")
        await friend_service.send("u2", "tok-u3")

        requests = await friend_service.list_incoming_requests("u3")

        assert [r.user_id for r in requests] == ["u1", "u2"]
        assert all(r.status == FriendshipStatus.PENDING for r in requests)

    @pytest.mark.asyncio
    async def test_incoming_requests_empty_without_profile(self, friend_service: FriendService) -> None:
        """Test that a user without a profile has no incoming requests."""
        assert await friend_service.list_incoming_requests("ghost") == []
        assert await friend_service.get_request_count("ghost") == 0

    @pytest.mark.asyncio
    async def test_request_count(self, friend_service: FriendService) -> None:
        """Test that the count matches pending incoming requests."""
        await friend_service.send("u1", "tok-u3")
        await friend_service.send("u2", "tok-u3")
        await friend_service.accept("u3", "u2")

        assert await friend_service.get_request_count("u3") == 1

    @pytest.mark.asyncio
    async def test_outgoing_requests(self, friend_service: FriendService) -> None:
        """Test that outgoing requests list the targets."""
        await friend_service.send("u1", "tok-u2")
        await friend_service.send("u1", "tok-u3")

        outgoing = await friend_service.list_outgoing_requests("u1")

        assert _friend_ids(outgoing) == {"u2", "u3"}

    @pytest.mark.asyncio
    async def test_friends_skip_missing_profiles(self, friend_service: FriendService, edge_store) -> None:
        """Test that an accepted edge toward a missing profile is skipped."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")
        edge_store.edges[("u1", "tok-gone")] = {
            "user_id": "u1",
            "friend_kitty_hash": "tok-gone",
            "friendship_status": "accepted",
            "created_at": "2026-01-01T00:00:00+00:00",
        }

        friends = await friend_service.list_friends("u1")

        assert [f.user_id for f in friends] == ["u2"]
        assert friends[0].status == FriendshipStatus.ACCEPTED


class TestRepair:
    """Tests for repair_relationships method."""

    @pytest.mark.asyncio
    async def test_reports_missing_peer_side_without_writing(
        self, friend_service: FriendService, edge_store
    ) -> None:
        """Test that the requester's repair reports the accepter's missing side."""
        await friend_service.send("u1", "tok-u2")
        edge_store.broken_owners.add("u2")
        with pytest.raises(PartialMirrorFailureError):
            await friend_service.accept("u2", "u1")
        edge_store.broken_owners.clear()

        report = await friend_service.repair_relationships("u1")

        assert report.unmirrored == ["tok-u2"]
        assert edge_store.edges_owned_by("u2") == []

    @pytest.mark.asyncio
    async def test_friend_repair_does_not_undo_partial_remove(
        self, friend_service: FriendService, edge_store
    ) -> None:
        """Test that a removed friend stays removed when the other side repairs."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")
        edge_store.broken_owners.add("u1")
        with pytest.raises(PartialMirrorFailureError):
            await friend_service.remove("u2", "tok-u1")
        edge_store.broken_owners.clear()

        report = await friend_service.repair_relationships("u1")

        assert report.unmirrored == ["tok-u2"]
        assert await friend_service.list_friends("u2") == []
        assert edge_store.edges_owned_by("u2") == []

    @pytest.mark.asyncio
    async def test_adopt_incoming_completes_own_side(self, friend_service: FriendService, edge_store) -> None:
        """Test that the accepter can complete their own side after a partial accept."""
        await friend_service.send("u1", "tok-u2")
        edge_store.broken_owners.add("u2")
        with pytest.raises(PartialMirrorFailureError):
            await friend_service.accept("u2", "u1")
        edge_store.broken_owners.clear()

        without = await friend_service.repair_relationships("u2")
        assert without.own_mirrors_written == 0

        report = await friend_service.repair_relationships("u2", adopt_incoming=True)

        assert report.own_mirrors_written == 1
        assert "u1" in _friend_ids(await friend_service.list_friends("u2"))

    @pytest.mark.asyncio
    async def test_consistent_graph_needs_no_writes(self, friend_service: FriendService) -> None:
        """Test that repair writes nothing when both sides agree."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")

        report = await friend_service.repair_relationships("u1", adopt_incoming=True)

        assert report.checked == 2
        assert report.unmirrored == []
        assert report.own_mirrors_written == 0

    @pytest.mark.asyncio
    async def test_does_not_resurrect_removed_friend_by_default(
        self, friend_service: FriendService, edge_store
    ) -> None:
        """Test that the remover's repair leaves a stale incoming edge alone."""
        await _befriend(friend_service, "u1", "u2", "tok-u2")
        edge_store.broken_owners.add("u2")
        with pytest.raises(PartialMirrorFailureError):
            await friend_service.remove("u1", "tok-u2")
        edge_store.broken_owners.clear()

        await friend_service.repair_relationships("u1")

        assert await friend_service.list_friends("u1") == []

    @pytest.mark.asyncio
    async def test_reports_unresolved_hashes(self, friend_service: FriendService, edge_store) -> None:
        """Test that accepted edges toward unknown hashes are reported."""
        edge_store.edges[("u1", "tok-gone")] = {
            "user_id": "u1",
            "friend_kitty_hash": "tok-gone",
            "friendship_status": "accepted",
            "created_at": "2026-01-01T00:00:00+00:00",
        }

        report = await friend_service.repair_relationships("u1")

        assert report.unresolved == ["tok-gone"]
