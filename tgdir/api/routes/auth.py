"""Authentication routes - register, login, profile, activity."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.api.deps import get_current_user, get_db_session, http_error
from tgdir.api.schemas.auth import (
    ActivityItem,
    ActivityListResponse,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UpdateProfileRequest,
    UserResponse,
)
from tgdir.domain import User
from tgdir.domain.errors import DirectoryError
from tgdir.domain.services.activity import ActivityRecorder
from tgdir.domain.services.auth_service import AuthService

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a new account. New accounts always get the `user` role.",
)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    """Register a new user."""
    service = AuthService(session)

    try:
        result = await service.register(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc

    return RegisterResponse(
        message="Registration successful",
        user=UserResponse(**result["user"]),
        tokens=TokenResponse(**result["tokens"]),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate with username and password, returns JWT tokens.",
)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    """Authenticate user and return tokens."""
    service = AuthService(session)

    try:
        result = await service.login(username=payload.username, password=payload.password)
    except DirectoryError as exc:
        raise http_error(exc) from exc

    return LoginResponse(
        message="Login successful",
        user=UserResponse(**result["user"]),
        tokens=TokenResponse(**result["tokens"]),
    )


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
    description="Get the currently authenticated user's profile.",
)
async def get_me(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    """Get current authenticated user's profile."""
    service = AuthService(session)

    try:
        user_data = await service.get_user_by_id(user.user_id)
    except DirectoryError as exc:
        raise http_error(exc) from exc

    return MeResponse(user=UserResponse(**user_data))


@router.patch("/me", response_model=MeResponse, summary="Update profile")
async def update_me(
    payload: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    service = AuthService(session)

    try:
        user_data = await service.update_profile(
            user_id=user.user_id, email=payload.email, full_name=payload.full_name
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc

    await ActivityRecorder(session).record(
        user.user_id,
        "update",
        "profile",
        {"fields": sorted(payload.model_dump(exclude_none=True))},
        entity_id=user.user_id,
    )
    return MeResponse(user=UserResponse(**user_data))


@router.post(
    "/change-password",
    response_model=dict,
    summary="Change password",
    description="Change the current user's password.",
)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    """Change current user's password."""
    service = AuthService(session)

    try:
        result = await service.change_password(
            user_id=user.user_id,
            current_password=payload.current_password,
            new_password=payload.new_password,
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc

    return result


@router.get("/me/activity", response_model=ActivityListResponse, summary="Recent activity")
async def my_activity(
    limit: int = Query(5, ge=1, le=20),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> ActivityListResponse:
    entries = await ActivityRecorder(session).list_recent(user.user_id, limit=limit)
    return ActivityListResponse(items=[ActivityItem.model_validate(entry) for entry in entries])
