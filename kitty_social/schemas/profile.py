"""Profile Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from kitty_social.models.relationship import FriendshipStatus


class ProfileRegister(BaseModel):
    """Schema for completing onboarding.

    The kitty hash is derived server-side; clients never choose it.
    """

    full_name: str | None = Field(default=None, max_length=255, description="User display name")
    kitty_name: str = Field(..., min_length=1, max_length=64, description="Name of the user's kitty")
    kitty_breed_id: str = Field(..., min_length=1, max_length=64, description="Adopted kitty breed")


class KittyUpdate(BaseModel):
    """Schema for renaming or re-breeding a kitty.

    All fields are optional for partial updates.
    """

    kitty_name: str | None = Field(default=None, min_length=1, max_length=64, description="New kitty name")
    kitty_breed_id: str | None = Field(default=None, min_length=1, max_length=64, description="New kitty breed")


class StatsUpdate(BaseModel):
    """Schema for the gamification side pushing refreshed level and XP."""

    level: int = Field(..., ge=1, description="Current level")
    xp: int = Field(..., ge=0, description="Current experience points")


class ProfileView(BaseModel):
    """Public view of a kitty profile."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Associated auth user ID")
    kitty_hash: str = Field(description="Shareable identity token")
    full_name: str | None = Field(default=None, description="User display name")
    kitty_name: str | None = Field(default=None, description="Kitty name")
    kitty_breed_id: str | None = Field(default=None, description="Kitty breed")
    level: int = Field(default=1, ge=1, description="Current level")
    xp: int = Field(default=0, ge=0, description="Current experience points")


class ProfileResponse(ProfileView):
    """Schema for the caller's own profile."""

    created_at: datetime = Field(description="Profile creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")


class FriendProfile(ProfileView):
    """A profile annotated with the relationship status seen by the caller."""

    status: FriendshipStatus = Field(description="Relationship status")
