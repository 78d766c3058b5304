"""Friend request, friend list and leaderboard routes."""

from fastapi import APIRouter, Query, Response, status

from kitty_social.api.deps import CurrentUser, Friends, Profiles
from kitty_social.api.middleware.error_handler import NotFoundError
from kitty_social.schemas.common import MessageResponse
from kitty_social.schemas.friend import (
    FriendListResponse,
    FriendRequestCreate,
    FriendRequestListResponse,
    LeaderboardResponse,
    RepairReport,
    RequestCountResponse,
    SendFriendRequestResponse,
    SendOutcome,
)
from kitty_social.schemas.profile import ProfileView
from kitty_social.services.leaderboard_service import own_rank, rank

router = APIRouter(prefix="/friends", tags=["friends"])


@router.post(
    "/requests",
    response_model=SendFriendRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a friend request",
    description="Sends a friend request to the owner of a kitty hash. Sending twice is harmless.",
)
async def send_friend_request(
    data: FriendRequestCreate,
    user: CurrentUser,
    friends: Friends,
    response: Response,
) -> SendFriendRequestResponse:
    """Send a friend request by kitty hash.

    Returns 201 when a request was created and 200 when one already existed.
    """
    outcome, target = await friends.send(user.user_id, data.friend_kitty_hash)
    if outcome == SendOutcome.ALREADY_RELATED:
        response.status_code = status.HTTP_200_OK

    return SendFriendRequestResponse(outcome=outcome, friend=ProfileView(**target))


@router.get(
    "/requests",
    response_model=FriendRequestListResponse,
    summary="List incoming friend requests",
)
async def list_incoming_requests(user: CurrentUser, friends: Friends) -> FriendRequestListResponse:
    """List pending requests sent to the authenticated user."""
    return FriendRequestListResponse(requests=await friends.list_incoming_requests(user.user_id))


@router.get(
    "/requests/outgoing",
    response_model=FriendRequestListResponse,
    summary="List outgoing friend requests",
)
async def list_outgoing_requests(user: CurrentUser, friends: Friends) -> FriendRequestListResponse:
    """List pending requests the authenticated user has sent."""
    return FriendRequestListResponse(requests=await friends.list_outgoing_requests(user.user_id))


@router.get(
    "/requests/count",
    response_model=RequestCountResponse,
    summary="Count incoming friend requests",
    description="Cheap endpoint for badge polling.",
)
async def count_incoming_requests(user: CurrentUser, friends: Friends) -> RequestCountResponse:
    """Count pending requests sent to the authenticated user."""
    return RequestCountResponse(count=await friends.get_request_count(user.user_id))


@router.post(
    "/requests/{requester_user_id}/accept",
    response_model=MessageResponse,
    summary="Accept a friend request",
)
async def accept_friend_request(
    requester_user_id: str,
    user: CurrentUser,
    friends: Friends,
) -> MessageResponse:
    """Accept a pending request from another user.

    Raises:
        RequestNotFoundError: 404 if no pending request exists.
        PartialMirrorFailureError: 502 if only the requester's side was updated.
    """
    await friends.accept(user.user_id, requester_user_id)
    return MessageResponse(message="Friend request accepted")


@router.post(
    "/requests/{requester_user_id}/reject",
    response_model=MessageResponse,
    summary="Reject a friend request",
)
async def reject_friend_request(
    requester_user_id: str,
    user: CurrentUser,
    friends: Friends,
) -> MessageResponse:
    """Reject a pending request from another user."""
    await friends.reject(user.user_id, requester_user_id)
    return MessageResponse(message="Friend request rejected")


@router.get(
    "",
    response_model=FriendListResponse,
    summary="List friends",
)
async def list_friends(user: CurrentUser, friends: Friends) -> FriendListResponse:
    """List the authenticated user's accepted friends."""
    return FriendListResponse(friends=await friends.list_friends(user.user_id))


@router.get(
    "/leaderboard",
    response_model=LeaderboardResponse,
    summary="Friends leaderboard",
    description="Ranks the user among their friends by level, then XP.",
)
async def get_leaderboard(
    user: CurrentUser,
    friends: Friends,
    profiles: Profiles,
) -> LeaderboardResponse:
    """Rank the authenticated user among their accepted friends."""
    own_profile = await profiles.get(user.user_id)
    if not own_profile:
        raise NotFoundError("Profile not found. Finish adopting your kitty first.")

    ranked = rank(ProfileView(**own_profile), await friends.list_friends(user.user_id))
    return LeaderboardResponse(own_rank=own_rank(ranked, user.user_id), entries=ranked)


@router.post(
    "/repair",
    response_model=RepairReport,
    summary="Repair one-sided friendships",
    description="Reports one-sided friendships and, with adopt_incoming, completes the caller's side.",
)
async def repair_friendships(
    user: CurrentUser,
    friends: Friends,
    adopt_incoming: bool = Query(default=False, description="Also complete the caller's side of accepted requests"),
) -> RepairReport:
    """Reconcile the authenticated user's friendships."""
    return await friends.repair_relationships(user.user_id, adopt_incoming=adopt_incoming)


@router.delete(
    "/{friend_kitty_hash}",
    response_model=MessageResponse,
    summary="Remove a friend",
    description="Removes a friend or withdraws a request, from both sides.",
)
async def remove_friend(
    friend_kitty_hash: str,
    user: CurrentUser,
    friends: Friends,
) -> MessageResponse:
    """Remove a friend by kitty hash."""
    await friends.remove(user.user_id, friend_kitty_hash)
    return MessageResponse(message="Friend removed")
