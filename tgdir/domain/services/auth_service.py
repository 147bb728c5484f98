"""Authentication service with password hashing and user management."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import structlog
from passlib.context import CryptContext
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.core.auth import create_access_token
from tgdir.core.config import get_settings
from tgdir.domain.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from tgdir.domain.models import User
from tgdir.infrastructure.db.models import UserModel, UserRole, UserStatus
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _check_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class AuthService:
    """Service for authentication operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        full_name: str | None = None,
    ) -> dict:
        """
        Register a new account. Self-registration always yields role ``user``.

        Returns:
            dict with user data and tokens
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username or not email:
            raise ValidationError("Username and email are required")
        _check_password(password)

        await logger.ainfo("register_attempt", username=username, email=email)

        existing = await self.session.execute(
            select(UserModel.id).where(
                or_(UserModel.username == username, UserModel.email == email)
            )
        )
        if existing.first() is not None:
            await logger.awarning("register_duplicate", username=username, email=email)
            raise ConflictError("Username or email is already registered")

        user = UserModel(
            username=username,
            email=email,
            hashed_password=hash_password(password),
            full_name=full_name,
            role=UserRole.USER,
            status=UserStatus.ACTIVE,
        )

        try:
            async with UnitOfWork(self.session, operation="register"):
                self.session.add(user)
        except PersistenceError as exc:  # pragma: no cover - lost a race with a concurrent signup
            if isinstance(exc.__cause__, IntegrityError):
                raise ConflictError("Username or email is already registered") from exc
            raise

        await logger.ainfo("register_success", user_id=user.id, username=username)
        return {"user": self._user_to_dict(user), "tokens": self._generate_tokens(user)}

    async def login(self, *, username: str, password: str) -> dict:
        """
        Authenticate with username and password.

        Returns:
            dict with user data and tokens
        """
        await logger.ainfo("login_attempt", username=username)

        user = await self._find_by_username((username or "").strip())
        if user is None or not verify_password(password, user.hashed_password):
            await logger.awarning("login_invalid_credentials", username=username)
            raise AuthenticationError("Invalid username or password")

        if user.status != UserStatus.ACTIVE:
            await logger.awarning("login_inactive_user", username=username, status=user.status.value)
            raise AuthorizationError(f"Account is {user.status.value}")

        async with UnitOfWork(self.session, operation="login"):
            user.last_login_at = datetime.now(UTC)

        await logger.ainfo("login_success", user_id=user.id, username=username)
        return {"user": self._user_to_dict(user), "tokens": self._generate_tokens(user)}

    async def get_user_by_id(self, user_id: str) -> dict:
        """Get user by ID."""
        return self._user_to_dict(await self._get(user_id))

    async def update_profile(
        self, *, user_id: str, email: str | None = None, full_name: str | None = None
    ) -> dict:
        user = await self._get(user_id)

        if email is not None:
            email = email.strip().lower()
            taken = await self.session.execute(
                select(UserModel.id).where(UserModel.email == email, UserModel.id != user_id)
            )
            if taken.first() is not None:
                raise ConflictError("Email is already registered")

        async with UnitOfWork(self.session, operation="update_profile"):
            if email is not None:
                user.email = email
            if full_name is not None:
                user.full_name = full_name.strip() or None

        await logger.ainfo("profile_updated", user_id=user_id)
        return self._user_to_dict(user)

    async def change_password(
        self, *, user_id: str, current_password: str, new_password: str
    ) -> dict:
        """Change user password."""
        user = await self._get(user_id)

        if not verify_password(current_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect")
        _check_password(new_password)

        async with UnitOfWork(self.session, operation="change_password"):
            await self.session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(hashed_password=hash_password(new_password))
            )

        await logger.ainfo("password_changed", user_id=user_id)
        return {"message": "Password changed successfully"}

    async def list_users(self, actor: User) -> list[dict]:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can list users")

        result = await self.session.execute(
            select(UserModel).order_by(UserModel.created_at.desc(), UserModel.id.desc())
        )
        return [self._user_to_dict(user) for user in result.scalars().all()]

    async def update_user_role(self, actor: User, *, user_id: str, role: str) -> dict:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can change roles")
        try:
            new_role = UserRole(role)
        except ValueError as exc:
            raise ValidationError(f"Invalid role: {role}") from exc
        if user_id == actor.user_id and new_role != UserRole.ADMIN:
            raise ValidationError("Admins cannot remove their own admin role")

        user = await self._get(user_id)
        async with UnitOfWork(self.session, operation="update_user_role"):
            user.role = new_role

        await logger.ainfo(
            "user_role_updated", user_id=user_id, role=new_role.value, actor_id=actor.user_id
        )
        return self._user_to_dict(user)

    async def _get(self, user_id: str) -> UserModel:
        user = await self.session.get(UserModel, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def _find_by_username(self, username: str) -> UserModel | None:
        result = await self.session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()

    def _generate_tokens(self, user: UserModel) -> dict:
        """Generate access and refresh tokens for user."""
        settings = get_settings()
        claims = {
            "roles": [user.role.value],
            "username": user.username,
            "email": user.email,
        }

        access_token = create_access_token(
            subject=user.id,
            expires_delta=timedelta(seconds=settings.access_token_ttl_seconds),
            **claims,
        )
        refresh_token = create_access_token(
            subject=user.id,
            expires_delta=timedelta(days=settings.refresh_token_ttl_days),
            **claims,
        )

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.access_token_ttl_seconds,
        }

    def _user_to_dict(self, user: UserModel) -> dict:
        """Convert UserModel to dict for response."""
        return {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role.value,
            "status": user.status.value,
            "created_at": user.created_at,
            "last_login_at": user.last_login_at,
        }
