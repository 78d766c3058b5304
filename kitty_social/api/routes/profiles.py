"""Profile API routes."""

from fastapi import APIRouter, status

from kitty_social.api.deps import CurrentUser, Onboarding, Profiles
from kitty_social.api.middleware.error_handler import NotFoundError
from kitty_social.schemas.profile import (
    KittyUpdate,
    ProfileRegister,
    ProfileResponse,
    ProfileView,
    StatsUpdate,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get(
    "/me",
    response_model=ProfileResponse,
    summary="Get current user's profile",
)
async def get_my_profile(user: CurrentUser, profiles: Profiles) -> ProfileResponse:
    """Get the authenticated user's profile.

    Raises:
        NotFoundError: 404 if the user has not finished onboarding.
    """
    profile = await profiles.get(user.user_id)
    if not profile:
        raise NotFoundError("Profile not found")

    return ProfileResponse(**profile)


@router.post(
    "/me",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register kitty profile",
    description="Completes onboarding. The kitty hash is minted on first registration and never changes.",
)
async def register_my_profile(
    data: ProfileRegister,
    user: CurrentUser,
    onboarding: Onboarding,
) -> ProfileResponse:
    """Create or refresh the authenticated user's kitty profile."""
    profile = await onboarding.register_profile(
        user_id=user.user_id,
        full_name=data.full_name or user.full_name,
        kitty_name=data.kitty_name,
        kitty_breed_id=data.kitty_breed_id,
    )
    return ProfileResponse(**profile)


@router.patch(
    "/me/kitty",
    response_model=ProfileResponse,
    summary="Update kitty",
)
async def update_my_kitty(
    data: KittyUpdate,
    user: CurrentUser,
    profiles: Profiles,
) -> ProfileResponse:
    """Rename the kitty or change its breed."""
    profile = await profiles.get(user.user_id)
    if not profile:
        raise NotFoundError("Profile not found")

    if data.kitty_name is not None:
        profile = await profiles.update_kitty_name(user.user_id, data.kitty_name)
    if data.kitty_breed_id is not None:
        profile = await profiles.update_kitty_breed(user.user_id, data.kitty_breed_id)

    return ProfileResponse(**profile)


@router.put(
    "/me/stats",
    response_model=ProfileResponse,
    summary="Refresh level and XP",
    description="Called by the gamification side after XP changes. Progress cannot move backwards.",
)
async def update_my_stats(
    data: StatsUpdate,
    user: CurrentUser,
    profiles: Profiles,
) -> ProfileResponse:
    """Store refreshed level and XP for the authenticated user."""
    profile = await profiles.update_stats(user.user_id, data.level, data.xp)
    return ProfileResponse(**profile)


@router.get(
    "/by-hash/{kitty_hash}",
    response_model=ProfileView,
    summary="Look up a kitty by hash",
    description="Preview the kitty behind a shared hash before sending a request.",
)
async def get_profile_by_hash(
    kitty_hash: str,
    user: CurrentUser,
    profiles: Profiles,
) -> ProfileView:
    """Resolve a kitty hash to its public profile."""
    profile = await profiles.get_by_token(kitty_hash)
    if not profile:
        raise NotFoundError("No kitty found with that hash")

    return ProfileView(**profile)
