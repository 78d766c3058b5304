"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from kitty_social.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from kitty_social.schemas.auth import UserContext
from kitty_social.services.friend_service import FriendService
from kitty_social.services.onboarding_service import OnboardingService
from kitty_social.services.profile_service import ProfileService


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_jwt(parts[1]).to_user_context()
    except AuthError as e:
        detail = "Token has expired" if e.code == AuthErrorCode.TOKEN_EXPIRED else e.message
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def get_profile_service() -> ProfileService:
    """Build the profile store for a request."""
    return ProfileService()


def get_friend_service(
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> FriendService:
    """Build the friend service over the request's profile store."""
    return FriendService(profiles=profiles)


def get_onboarding_service(
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> OnboardingService:
    """Build the onboarding service over the request's profile store."""
    return OnboardingService(profiles=profiles)


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
Profiles = Annotated[ProfileService, Depends(get_profile_service)]
Friends = Annotated[FriendService, Depends(get_friend_service)]
Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
