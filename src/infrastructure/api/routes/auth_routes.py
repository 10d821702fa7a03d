from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.infrastructure.api.dependencies import get_current_user, get_profile_repo
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


class ValidateTokenResponse(BaseModel):
    """Response model for token validation."""
    user_id: str = Field(..., description="Unique identifier of the authenticated user")
    email: str | None = Field(None, description="Email address of the authenticated user", example="user@example.com")
    couple_id: str | None = Field(None, description="Couple the user belongs to, if paired")


@router.post(
    "/validate",
    response_model=ValidateTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate Authentication Token",
    description="""
    Validate the bearer token and make sure a profile row exists for the user.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="User information confirming valid authentication",
)
def validate_token(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Validate the token and ensure the user profile exists."""
    prof = profiles.upsert(user.id, user.email)
    return {"user_id": prof.id, "email": prof.email, "couple_id": prof.couple_id}


class UserProfileResponse(BaseModel):
    """Response model for user profile information."""
    id: str = Field(..., description="Unique identifier of the user")
    email: str | None = Field(None, description="Email address of the user", example="user@example.com")
    name: str | None = Field(None, description="Display name of the user", example="Giulia")
    couple_id: str | None = Field(None, description="Couple the user belongs to, if paired")
    created_at: datetime | None = Field(None, description="ISO timestamp when the user profile was created")


@router.get(
    "/me",
    response_model=UserProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Current User Profile",
    response_description="Complete user profile information",
)
def get_me(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Get current user's profile information."""
    prof = profiles.upsert(user.id, user.email)
    return {
        "id": prof.id,
        "email": prof.email,
        "name": prof.display_name,
        "couple_id": prof.couple_id,
        "created_at": prof.created_at,
    }


class JoinCoupleBody(BaseModel):
    """Request model for attaching the current user to a couple."""
    couple_id: str = Field(..., min_length=1, max_length=64, description="Couple identifier")


@router.put(
    "/couple",
    response_model=ValidateTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Join Couple",
    description="""
    Attach the authenticated user's profile to a couple. Image access is
    scoped to the couple recorded here.

    **Authentication required**: Yes (Bearer token)
    """,
)
def join_couple(
    body: JoinCoupleBody,
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Set the couple of the current user's profile."""
    profiles.upsert(user.id, user.email)
    prof = profiles.set_couple(user.id, body.couple_id.strip())
    return {"user_id": prof.id, "email": prof.email, "couple_id": prof.couple_id}
