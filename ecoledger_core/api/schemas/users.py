"""User API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class SignInRequest(BaseModel):
    """Identity asserted by the external auth provider on sign-in."""

    email: str = Field(..., min_length=3, max_length=255, description="User email")
    name: str = Field(default="", max_length=255, description="Display name")


class RenameRequest(BaseModel):
    """Request body for changing the display name."""

    name: str = Field(..., min_length=1, max_length=255)


class UserResponse(BaseModel):
    """Response body for a user."""

    id: int
    email: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class SignInResponse(BaseModel):
    """Response body for sign-in."""

    user: UserResponse
    created: bool = Field(..., description="Whether this sign-in created the user")
