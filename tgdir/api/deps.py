from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable, Sequence

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.core.auth import Role, TokenError, create_access_token, decode_access_token
from tgdir.core.config import get_settings
from tgdir.domain import User
from tgdir.domain.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DirectoryError,
    GatewayError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from tgdir.infrastructure.db.session import get_session
from tgdir.libs.cryptomus_client import CryptomusClient, PaymentGatewayProtocol
from tgdir.libs.telegram_client import MetadataFetcherProtocol, TelegramClient

bearer_scheme = HTTPBearer(auto_error=False)

_ERROR_STATUS: tuple[tuple[type[DirectoryError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GatewayError, status.HTTP_502_BAD_GATEWAY),
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
) -> User:
    """Resolve the authenticated user from a bearer token."""
    if credentials is None:
        raise _unauthorized("Missing bearer token")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenError as exc:
        raise _unauthorized(str(exc)) from exc

    user_id = payload.get("sub")
    roles: Iterable[str] = payload.get("roles", [])

    if not user_id:
        raise _unauthorized("Token missing subject")

    if not roles:
        raise _forbidden("Token missing required roles")

    return User(
        user_id=user_id,
        username=payload.get("username", ""),
        email=payload.get("email", ""),
        roles=list(roles),
    )


def require_roles(required_roles: Sequence[str]) -> Callable[[User], User]:
    """Dependency factory enforcing that the authenticated user has one of the required roles."""
    settings = get_settings()
    allowed = set(settings.allowed_roles)

    invalid_roles = [role for role in required_roles if role not in allowed]
    if invalid_roles:
        joined_roles = ", ".join(invalid_roles)
        raise ValueError(f"Unsupported role(s) requested: {joined_roles}")

    required = set(required_roles)

    def dependency(user: User = Depends(get_current_user)) -> User:  # noqa: B008
        if not required.intersection(user.roles):
            raise _forbidden("Insufficient role privileges")
        return user

    return dependency


def issue_smoke_token(user_id: str, *, role: Role, username: str | None = None) -> str:
    """Generate a signed token for manual smoke testing."""
    return create_access_token(user_id, roles=[role.value], username=username)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Provide an async SQLAlchemy session for API handlers."""
    async for session in get_session():
        yield session


def get_metadata_fetcher() -> MetadataFetcherProtocol:
    """Telegram metadata lookups (overridden with a fake in tests)."""
    return TelegramClient()


def get_payment_gateway() -> PaymentGatewayProtocol:
    """Cryptomus gateway (overridden with a fake in tests)."""
    return CryptomusClient()


def http_error(exc: DirectoryError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
