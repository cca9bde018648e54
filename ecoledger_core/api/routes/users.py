"""User API routes.

Provides endpoints for:
- POST /users/sign-in - Create the user on first sign-in
- GET /users/me - Get the current user
- PATCH /users/me - Change the display name
"""

from fastapi import APIRouter, HTTPException, status

from ecoledger_core.api.deps import CurrentUser, DBSession, UserServiceDep
from ecoledger_core.api.schemas.users import (
    RenameRequest,
    SignInRequest,
    SignInResponse,
    UserResponse,
)
from ecoledger_core.domain.services.users import UserValidationError

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    request: SignInRequest,
    user_service: UserServiceDep,
    db: DBSession,
):
    """Resolve the signed-in identity to a user, creating it if needed."""
    try:
        user, created = user_service.get_or_create(request.email, request.name)
    except UserValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    db.commit()
    return SignInResponse(user=UserResponse.model_validate(user), created=created)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    """Get the current user."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def rename_me(
    request: RenameRequest,
    current_user: CurrentUser,
    user_service: UserServiceDep,
    db: DBSession,
):
    """Change the current user's display name."""
    try:
        user = user_service.rename(current_user.id, request.name)
    except UserValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    db.commit()
    return UserResponse.model_validate(user)
