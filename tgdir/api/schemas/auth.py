"""Pydantic schemas for authentication and account endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# --- Request Schemas ---


class RegisterRequest(BaseModel):
    """Request schema for user registration."""

    username: str = Field(
        ...,
        min_length=3,
        max_length=64,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Unique login name",
    )
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="Password (min 6 characters)",
    )
    full_name: str | None = Field(
        None,
        max_length=128,
        description="User's full name",
    )


class LoginRequest(BaseModel):
    """Request schema for user login."""

    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., description="User password")


class UpdateProfileRequest(BaseModel):
    email: EmailStr | None = Field(None, description="New email address")
    full_name: str | None = Field(None, max_length=128, description="New full name")


class ChangePasswordRequest(BaseModel):
    """Request schema for password change."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="New password (min 6 characters)",
    )


class UpdateRoleRequest(BaseModel):
    role: str = Field(..., pattern=r"^(user|admin)$", description="New role")


# --- Response Schemas ---


class TokenResponse(BaseModel):
    """Response schema containing JWT tokens."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(None, description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token TTL in seconds")


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: str = Field(..., description="User ID")
    username: str = Field(..., description="Login name")
    email: str = Field(..., description="User email")
    full_name: str | None = Field(None, description="User's full name")
    role: str = Field(..., description="User role")
    status: str = Field(..., description="Account status")
    created_at: datetime = Field(..., description="Account creation timestamp")
    last_login_at: datetime | None = Field(None, description="Last login timestamp")


class RegisterResponse(BaseModel):
    """Response schema for user registration."""

    message: str = Field(default="Registration successful")
    user: UserResponse
    tokens: TokenResponse


class LoginResponse(BaseModel):
    """Response schema for user login."""

    message: str = Field(default="Login successful")
    user: UserResponse
    tokens: TokenResponse


class MeResponse(BaseModel):
    """Response schema for current user info."""

    user: UserResponse


class ActivityItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action_type: str
    entity_type: str
    entity_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ActivityListResponse(BaseModel):
    items: list[ActivityItem]
