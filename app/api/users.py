"""User endpoints backing the frontend auth adapter."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import (
    get_current_user,
    get_reconciler,
    get_user_service,
    get_verified_identity,
)
from app.models.user import User
from app.schemas.user import (
    ProviderProfile,
    UserEnvelope,
    UserProfileCreate,
    UserResponse,
    UserUpdate,
)
from app.services.exceptions import (
    DomainNotAllowedError,
    PersistenceError,
    ReconciliationError,
    UserNotFoundError,
)
from app.services.reconciler import UserReconciler
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

SUPPORTED_PROVIDERS = {"google"}


def _envelope(user: User | None) -> UserEnvelope:
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserEnvelope(user=UserResponse.model_validate(user))


def _ensure_self(current_user: User, user_id: int) -> None:
    if current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only modify your own account",
        )


@router.post(
    "",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update a user",
    description="""
    Create or update the local user for a Google profile.

    Only the Google token is checked here, since the caller may not have
    a local user yet. The email and googleId in the body must match the token's
    identity.
    """,
)
async def create_or_update_user(
    data: UserProfileCreate,
    identity: ProviderProfile = Depends(get_verified_identity),
    reconciler: UserReconciler = Depends(get_reconciler),
) -> UserEnvelope:
    """Create or update a user from profile data."""
    if str(data.email).lower() != identity.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Email mismatch",
                "message": "Email in request body must match the authenticated user's email",
            },
        )

    if data.google_id and data.google_id != identity.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Google ID mismatch",
                "message": "googleId in request body must match the authenticated user's Google account",
            },
        )

    profile = ProviderProfile(
        id=identity.id,
        email=identity.email,
        name=data.name,
        picture=data.image,
    )

    try:
        user = await reconciler.reconcile(profile)
    except DomainNotAllowedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Access Denied", "message": e.message},
        )
    except ReconciliationError as e:
        logger.error(f"Error creating/updating user {identity.email}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to create user", "message": e.message},
        )

    return _envelope(user)


@router.get(
    "/email/{email}",
    response_model=UserEnvelope,
    summary="Get user by email",
)
def get_user_by_email(
    email: str,
    _: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    """Get a user by email."""
    return _envelope(user_service.get_user_by_email(email))


@router.get(
    "/provider/{provider}/{provider_account_id}",
    response_model=UserEnvelope,
    summary="Get user by provider account",
)
def get_user_by_provider(
    provider: str,
    provider_account_id: str,
    _: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    """Get a user by provider and provider account ID."""
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported provider")
    return _envelope(user_service.get_user_by_google_id(provider_account_id))


@router.get(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Get user by ID",
)
def get_user(
    user_id: int,
    _: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    """Get a user by internal ID."""
    return _envelope(user_service.get_user_by_id(user_id))


@router.put(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Update user",
    description="Update the caller's own name or avatar.",
)
def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    """Update a user."""
    _ensure_self(current_user, user_id)
    try:
        user = user_service.update_user(user_id, **data.model_dump(exclude_unset=True))
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    return _envelope(user)


@router.delete(
    "/{user_id}",
    summary="Deactivate user",
    description="Deactivate the caller's own account. Users are never hard-deleted.",
)
def delete_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> dict:
    """Deactivate a user."""
    _ensure_self(current_user, user_id)
    try:
        user_service.deactivate_user(user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    return {"success": True}
