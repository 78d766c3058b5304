"""Authentication schemas for JWT tokens and user context."""

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    full_name: str | None = Field(default=None, description="Display name from user metadata")


class TokenPayload(BaseModel):
    """JWT token payload structure for Supabase tokens."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's ID")
    email: str | None = Field(default=None, description="User's email address")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    user_metadata: dict = Field(default_factory=dict, description="Supabase user metadata")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=self.sub,
            email=self.email,
            full_name=self.user_metadata.get("full_name") or self.user_metadata.get("name"),
        )
