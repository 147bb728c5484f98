"""
Telegram Bot API client for group metadata lookups.

Resolves a public group/channel handle into a ``GroupMetadata`` snapshot using
``getChat`` and ``getChatMemberCount``. Retries rate limits, server errors and
timeouts with exponential backoff.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Protocol

import httpx
import structlog
from tgdir.core.config import get_settings
from tgdir.domain.errors import GatewayError, NotFoundError, ValidationError
from tgdir.domain.models import GroupMetadata
from tgdir.domain.reference_data import MAX_AUTO_TAGS, TAG_KEYWORDS

logger = structlog.get_logger()

_HANDLE_PREFIXES = ("https://t.me/", "http://t.me/", "t.me/", "@")
_HASHTAG_RE = re.compile(r"#(\w+)")
_CHAT_TYPES = {"group", "supergroup", "channel"}


class TelegramClientError(GatewayError):
    """Raised when the Bot API cannot be reached or rejects the request."""


class GroupNotFoundError(NotFoundError):
    """Raised when the handle does not resolve to a public chat."""


class MetadataFetcherProtocol(Protocol):
    """Protocol for group metadata lookups (allows faking in tests)."""

    async def fetch_group_metadata(self, handle: str) -> GroupMetadata:
        """Return the public metadata of a group."""
        ...


def normalize_handle(handle: str) -> str:
    """Strip ``@``/``t.me`` decorations from a user-entered handle."""
    cleaned = (handle or "").strip()
    for prefix in _HANDLE_PREFIXES:
        if cleaned.lower().startswith(prefix):
            cleaned = cleaned[len(prefix) :]
    cleaned = cleaned.strip().strip("/")
    if not cleaned:
        raise ValidationError("Please enter a valid group username")
    return cleaned


def extract_tags(description: str) -> list[str]:
    """Derive auto-tags from hashtags and known keywords in a description."""
    hashtags = _HASHTAG_RE.findall(description or "")
    lowered = (description or "").lower()
    keywords = [keyword for keyword in TAG_KEYWORDS if keyword in lowered]

    tags: list[str] = []
    for tag in [*hashtags, *keywords]:
        if tag not in tags:
            tags.append(tag)
    return tags[:MAX_AUTO_TAGS]


class TelegramClient:
    """Async Telegram Bot API client with retry logic."""

    def __init__(
        self,
        bot_token: str | None = None,
        base_url: str | None = None,
        max_retries: int | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_seconds: float = 1.0,
    ) -> None:
        settings = get_settings()
        self.bot_token = bot_token if bot_token is not None else settings.telegram_bot_token
        self.base_url = (base_url or settings.telegram_api_base).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else settings.telegram_max_retries
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.telegram_timeout_seconds
        )
        self.transport = transport
        self.backoff_seconds = backoff_seconds

        if not self.bot_token:
            logger.warning("telegram_bot_token_missing", msg="TELEGRAM_BOT_TOKEN not configured")

    async def fetch_group_metadata(self, handle: str) -> GroupMetadata:
        """Fetch name, description, member count and tags for a public group."""
        username = normalize_handle(handle)
        if not self.bot_token:
            raise TelegramClientError("TELEGRAM_BOT_TOKEN not configured")

        chat = await self._call("getChat", {"chat_id": f"@{username}"})
        members = await self._member_count(username)
        description = chat.get("description") or ""
        chat_type = chat.get("type", "group")

        metadata = GroupMetadata(
            name=chat.get("title") or username,
            description=description,
            username=chat.get("username") or username,
            link=f"https://t.me/{username}",
            members=members,
            image=f"https://t.me/i/userpic/320/{username}.jpg" if chat.get("photo") else None,
            verified=False,
            chat_type=chat_type if chat_type in _CHAT_TYPES else "group",
            tags=extract_tags(description),
        )
        await logger.ainfo(
            "telegram_metadata_fetched",
            username=username,
            members=members,
            tag_count=len(metadata.tags),
        )
        return metadata

    async def _member_count(self, username: str) -> int:
        # Member count is best effort; a missing count must not block a submission
        try:
            result = await self._call("getChatMemberCount", {"chat_id": f"@{username}"})
        except (TelegramClientError, GroupNotFoundError, ValidationError) as exc:
            await logger.awarning("telegram_member_count_failed", username=username, error=str(exc))
            return 0
        return int(result) if isinstance(result, int) else 0

    async def _call(self, method: str, params: dict[str, Any]) -> Any:
        """Invoke a Bot API method, retrying transient failures."""
        url = f"{self.base_url}/bot{self.bot_token}/{method}"
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self.transport
                ) as client:
                    response = await client.get(url, params=params)

                if response.status_code == 429 or response.status_code >= 500:
                    last_error = TelegramClientError(
                        f"Telegram API unavailable: {response.status_code}",
                        status_code=response.status_code,
                    )
                    await logger.awarning(
                        "telegram_retryable_error",
                        method=method,
                        status_code=response.status_code,
                        attempt=attempt + 1,
                    )
                elif response.status_code == 401:
                    raise TelegramClientError("Telegram bot token is invalid", status_code=401)
                else:
                    return self._parse(response, params)

            except httpx.TimeoutException:
                last_error = TelegramClientError(f"Request timed out (attempt {attempt + 1})")
                await logger.awarning("telegram_timeout", method=method, attempt=attempt + 1)

            except httpx.RequestError as exc:
                last_error = TelegramClientError(f"Request failed: {exc}")
                await logger.awarning(
                    "telegram_request_error", method=method, error=str(exc), attempt=attempt + 1
                )

            # Exponential backoff: 1s, 2s, 4s
            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.backoff_seconds * 2**attempt)

        raise last_error or TelegramClientError("All retries exhausted")

    def _parse(self, response: httpx.Response, params: dict[str, Any]) -> Any:
        try:
            data = response.json()
        except ValueError as exc:
            raise TelegramClientError(
                "Telegram API returned an invalid response", status_code=response.status_code
            ) from exc

        if data.get("ok"):
            return data.get("result")

        description = data.get("description") or "Could not fetch group information"
        chat_id = params.get("chat_id", "")
        if "chat not found" in description.lower():
            raise GroupNotFoundError(
                f'Group "{chat_id}" was not found. Check that the username is correct '
                "and that the group is public."
            )
        if "forbidden" in description.lower():
            raise TelegramClientError(
                f'The bot has no access to "{chat_id}"', status_code=response.status_code
            )
        if "bad request" in description.lower():
            raise ValidationError("Invalid request, please check the group username")
        raise TelegramClientError(description, status_code=response.status_code)
