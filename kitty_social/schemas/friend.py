"""Friend request and leaderboard schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from kitty_social.schemas.profile import FriendProfile, ProfileView


class SendOutcome(str, Enum):
    """Result of sending a friend request."""

    CREATED = "created"
    ALREADY_RELATED = "already_related"


class FriendRequestCreate(BaseModel):
    """Schema for sending a friend request by kitty hash."""

    friend_kitty_hash: str = Field(..., min_length=1, max_length=64, description="Target kitty hash")


class SendFriendRequestResponse(BaseModel):
    """Response for a send, created or idempotent."""

    outcome: SendOutcome = Field(description="Whether a new request was created")
    friend: ProfileView = Field(description="The target profile")


class FriendListResponse(BaseModel):
    """Accepted friends of the caller."""

    friends: list[FriendProfile] = Field(default_factory=list)


class FriendRequestListResponse(BaseModel):
    """Pending requests involving the caller."""

    requests: list[FriendProfile] = Field(default_factory=list)


class RequestCountResponse(BaseModel):
    """Number of pending incoming requests, for badge polling."""

    count: int = Field(ge=0, description="Pending incoming requests")


class RankedProfile(ProfileView):
    """A leaderboard row."""

    model_config = ConfigDict(from_attributes=True)

    rank: int = Field(ge=1, description="1-based position by level then XP")
    is_self: bool = Field(default=False, description="Whether this row is the caller")


class LeaderboardResponse(BaseModel):
    """Ranked leaderboard including the caller."""

    own_rank: int = Field(ge=1, description="The caller's rank")
    entries: list[RankedProfile] = Field(default_factory=list)


class RepairReport(BaseModel):
    """Summary of a repair pass over the caller's friendships."""

    checked: int = Field(default=0, ge=0, description="Accepted edges inspected")
    unmirrored: list[str] = Field(
        default_factory=list,
        description="Friends' kitty hashes whose side of the friendship is missing",
    )
    own_mirrors_written: int = Field(default=0, ge=0, description="Mirrors written on the caller's side")
    unresolved: list[str] = Field(default_factory=list, description="Kitty hashes with no matching profile")
