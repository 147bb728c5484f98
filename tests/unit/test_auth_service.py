"""Unit tests for authentication service."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.core.auth import decode_access_token
from tgdir.domain.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from tgdir.domain.services.auth_service import AuthService, hash_password, verify_password
from tgdir.infrastructure.db.models import UserModel, UserStatus

from tests.utils import make_user


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_returns_bcrypt_hash(self) -> None:
        """Hash should start with bcrypt prefix."""
        hashed = hash_password("test_password_123")

        assert hashed.startswith("$2b$")
        assert len(hashed) == 60

    def test_hash_password_unique_per_call(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        assert hash_password("test_password_123") != hash_password("test_password_123")

    def test_verify_password(self) -> None:
        hashed = hash_password("TestPassword123")

        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("testpassword123", hashed) is False


class TestAuthSchemas:
    """Tests for auth request/response schemas."""

    def test_register_request_valid(self) -> None:
        from tgdir.api.schemas.auth import RegisterRequest

        request = RegisterRequest(
            username="alice_01",
            email="alice@example.com",
            password="secret1",
            full_name="Alice",
        )

        assert request.username == "alice_01"
        assert request.email == "alice@example.com"

    def test_register_request_password_min_length(self) -> None:
        from pydantic import ValidationError as SchemaError
        from tgdir.api.schemas.auth import RegisterRequest

        with pytest.raises(SchemaError) as exc_info:
            RegisterRequest(username="alice", email="alice@example.com", password="short")

        assert "String should have at least 6 characters" in str(exc_info.value)

    def test_register_request_rejects_spaces_in_username(self) -> None:
        from pydantic import ValidationError as SchemaError
        from tgdir.api.schemas.auth import RegisterRequest

        with pytest.raises(SchemaError):
            RegisterRequest(username="alice smith", email="alice@example.com", password="secret1")


class TestAuthService:
    async def _register(self, db: AsyncSession, username: str = "alice") -> dict:
        return await AuthService(db).register(
            username=username,
            email=f"{username}@example.com",
            password="secret1",
            full_name="Alice",
        )

    async def test_register_always_creates_regular_user(self, db: AsyncSession) -> None:
        result = await self._register(db)

        assert result["user"]["role"] == "user"
        assert result["user"]["status"] == "active"
        payload = decode_access_token(result["tokens"]["access_token"])
        assert payload["sub"] == result["user"]["id"]
        assert payload["roles"] == ["user"]
        assert payload["username"] == "alice"

    async def test_register_duplicate_username(self, db: AsyncSession) -> None:
        await self._register(db)

        with pytest.raises(ConflictError):
            await AuthService(db).register(
                username="alice", email="other@example.com", password="secret1"
            )

    async def test_register_duplicate_email_is_case_insensitive(self, db: AsyncSession) -> None:
        await self._register(db)

        with pytest.raises(ConflictError):
            await AuthService(db).register(
                username="bob", email="ALICE@example.com", password="secret1"
            )

    async def test_register_short_password(self, db: AsyncSession) -> None:
        with pytest.raises(ValidationError):
            await AuthService(db).register(username="bob", email="bob@example.com", password="123")

    async def test_login_success_sets_last_login(self, db: AsyncSession) -> None:
        await self._register(db)

        result = await AuthService(db).login(username="alice", password="secret1")

        assert result["user"]["username"] == "alice"
        assert result["user"]["last_login_at"] is not None
        assert result["tokens"]["token_type"] == "bearer"

    async def test_login_wrong_password(self, db: AsyncSession) -> None:
        await self._register(db)

        with pytest.raises(AuthenticationError, match="Invalid username or password"):
            await AuthService(db).login(username="alice", password="wrong-pass")

    async def test_login_unknown_user(self, db: AsyncSession) -> None:
        with pytest.raises(AuthenticationError):
            await AuthService(db).login(username="ghost", password="secret1")

    async def test_login_inactive_user(self, db: AsyncSession) -> None:
        result = await self._register(db)
        user = await db.get(UserModel, result["user"]["id"])
        user.status = UserStatus.SUSPENDED
        await db.commit()

        with pytest.raises(AuthorizationError):
            await AuthService(db).login(username="alice", password="secret1")

    async def test_change_password(self, db: AsyncSession) -> None:
        result = await self._register(db)
        service = AuthService(db)

        with pytest.raises(AuthenticationError):
            await service.change_password(
                user_id=result["user"]["id"], current_password="nope12", new_password="newpass1"
            )

        await service.change_password(
            user_id=result["user"]["id"], current_password="secret1", new_password="newpass1"
        )
        login = await service.login(username="alice", password="newpass1")
        assert login["user"]["id"] == result["user"]["id"]

    async def test_update_profile(self, db: AsyncSession) -> None:
        result = await self._register(db)
        await self._register(db, username="bob")
        service = AuthService(db)

        updated = await service.update_profile(
            user_id=result["user"]["id"], email="Alice.New@Example.com", full_name="  "
        )
        assert updated["email"] == "alice.new@example.com"
        assert updated["full_name"] is None

        with pytest.raises(ConflictError):
            await service.update_profile(user_id=result["user"]["id"], email="bob@example.com")

    async def test_role_management_is_admin_only(self, db: AsyncSession) -> None:
        result = await self._register(db)
        user_id = result["user"]["id"]
        service = AuthService(db)

        with pytest.raises(AuthorizationError):
            await service.list_users(make_user(user_id))
        with pytest.raises(AuthorizationError):
            await service.update_user_role(make_user(user_id), user_id=user_id, role="admin")

        admin = make_user("admin-user", admin=True)
        promoted = await service.update_user_role(admin, user_id=user_id, role="admin")
        assert promoted["role"] == "admin"
        assert [item["username"] for item in await service.list_users(admin)] == ["alice"]

    async def test_admin_cannot_demote_self(self, db: AsyncSession) -> None:
        result = await self._register(db)
        user_id = result["user"]["id"]

        with pytest.raises(ValidationError):
            await AuthService(db).update_user_role(
                make_user(user_id, admin=True), user_id=user_id, role="user"
            )
