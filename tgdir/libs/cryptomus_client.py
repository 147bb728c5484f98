"""
Cryptomus API client for promotion payments.

Every request body is signed with ``md5(base64(body) + api_key)`` and sent with
``merchant``/``sign`` headers. Webhook payloads carry the same signature over
the payload without its ``sign`` key.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog
from tgdir.core.config import get_settings
from tgdir.domain.errors import GatewayError

logger = structlog.get_logger(__name__)

PAID_STATUSES = frozenset({"paid", "paid_over"})
FAILED_STATUSES = frozenset({"fail", "cancel", "system_fail", "wrong_amount"})


class CryptomusClientError(GatewayError):
    """Base exception for Cryptomus client errors."""


class CryptomusAPIError(CryptomusClientError):
    """Raised for non-success responses from Cryptomus."""


@dataclass(slots=True)
class PaymentIntent:
    """Minimal payment creation response."""

    payment_url: str
    payment_id: str


@dataclass(slots=True)
class PaymentStatus:
    """Settlement state of a payment as reported by the gateway."""

    payment_id: str
    order_id: str
    status: str

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES


class PaymentGatewayProtocol(Protocol):
    """Protocol for the payment gateway (allows faking in tests)."""

    async def create_payment_intent(
        self,
        *,
        amount: float,
        currency: str,
        order_id: str,
        return_url: str | None,
        callback_url: str | None,
        ttl_seconds: int,
    ) -> PaymentIntent:
        """Create a payment and return where the payer should be sent."""
        ...

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        """Return the current settlement status of a payment."""
        ...

    def verify_signature(self, payload: dict[str, Any]) -> bool:
        """Return True if a webhook payload was signed with our API key."""
        ...


def sign_body(body: str, api_key: str) -> str:
    encoded = base64.b64encode(body.encode("utf-8")).decode("ascii")
    return hashlib.md5((encoded + api_key).encode("utf-8")).hexdigest()  # noqa: S324


def _webhook_body(payload: dict[str, Any]) -> str:
    # Cryptomus signs PHP-style JSON: compact, unicode kept, slashes escaped
    unsigned = {key: value for key, value in payload.items() if key != "sign"}
    return json.dumps(unsigned, ensure_ascii=False, separators=(",", ":")).replace("/", "\\/")


class CryptomusClient:
    """Async Cryptomus API client."""

    def __init__(
        self,
        merchant_id: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int | None = None,
        to_currency: str | None = None,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_seconds: float = 1.0,
    ) -> None:
        settings = get_settings()
        self.merchant_id = merchant_id or settings.cryptomus_merchant_id
        self.api_key = api_key or settings.cryptomus_api_key
        self.base_url = (base_url or settings.cryptomus_base_url).rstrip("/")
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.cryptomus_timeout_seconds
        )
        self.to_currency = to_currency or settings.payment_to_currency
        self.max_retries = max_retries
        self.transport = transport
        self.backoff_seconds = backoff_seconds

        if not self.merchant_id or not self.api_key:
            logger.warning(
                "cryptomus_credentials_missing",
                msg="CRYPTOMUS_MERCHANT_ID or CRYPTOMUS_API_KEY not configured",
            )

    async def create_payment_intent(
        self,
        *,
        amount: float,
        currency: str,
        order_id: str,
        return_url: str | None,
        callback_url: str | None,
        ttl_seconds: int,
    ) -> PaymentIntent:
        """Create an invoice and return its hosted payment URL."""
        payload: dict[str, Any] = {
            "amount": f"{amount:.2f}",
            "currency": currency,
            "order_id": order_id,
            "to_currency": self.to_currency,
            "lifetime": ttl_seconds,
            "is_payment_multiple": False,
        }
        if return_url:
            payload["url_return"] = return_url
        if callback_url:
            payload["url_callback"] = callback_url

        result = await self._post("payment", payload)
        payment_url = result.get("url")
        payment_id = result.get("uuid")
        if not payment_url or not payment_id:
            raise CryptomusAPIError("Cryptomus response missing payment url or uuid")

        await logger.ainfo("cryptomus_payment_created", order_id=order_id, payment_id=payment_id)
        return PaymentIntent(payment_url=payment_url, payment_id=payment_id)

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        """Poll the settlement status of a payment."""
        result = await self._post("payment/info", {"uuid": payment_id})
        return PaymentStatus(
            payment_id=result.get("uuid", payment_id),
            order_id=result.get("order_id", ""),
            status=result.get("payment_status") or result.get("status") or "",
        )

    def verify_signature(self, payload: dict[str, Any]) -> bool:
        """Check a webhook payload's ``sign`` against our API key."""
        received = payload.get("sign")
        if not received or not self.api_key:
            return False
        expected = sign_body(_webhook_body(payload), self.api_key)
        return hmac.compare_digest(expected, str(received))

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.merchant_id or not self.api_key:
            raise CryptomusClientError("Cryptomus credentials not configured")

        body = json.dumps(payload)
        headers = {
            "merchant": self.merchant_id,
            "sign": sign_body(body, self.api_key),
            "Content-Type": "application/json",
        }
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self.transport
                ) as client:
                    response = await client.post(
                        f"{self.base_url}/{path}", headers=headers, content=body
                    )

                if response.status_code == 429 or response.status_code >= 500:
                    last_error = CryptomusAPIError(
                        f"Cryptomus unavailable: {response.status_code}",
                        status_code=response.status_code,
                    )
                    await logger.awarning(
                        "cryptomus_retryable_error",
                        path=path,
                        status_code=response.status_code,
                        attempt=attempt + 1,
                    )
                else:
                    return self._parse(response)

            except httpx.TimeoutException:
                last_error = CryptomusClientError(f"Request timed out (attempt {attempt + 1})")
                await logger.awarning("cryptomus_timeout", path=path, attempt=attempt + 1)

            except httpx.RequestError as exc:
                last_error = CryptomusClientError(f"Request failed: {exc}")
                await logger.awarning(
                    "cryptomus_request_error", path=path, error=str(exc), attempt=attempt + 1
                )

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.backoff_seconds * 2**attempt)

        raise last_error or CryptomusClientError("All retries exhausted")

    def _parse(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise CryptomusAPIError(
                "Cryptomus response was not valid JSON", status_code=response.status_code
            ) from exc

        if response.status_code != 200 or data.get("state") != 0:
            errors = data.get("errors") or {}
            if isinstance(errors, dict) and errors:
                message = ", ".join(
                    str(item)
                    for value in errors.values()
                    for item in (value if isinstance(value, list) else [value])
                )
            else:
                message = data.get("message") or "Payment could not be created"
            raise CryptomusAPIError(
                f"Cryptomus error {response.status_code}: {message}",
                status_code=response.status_code,
            )

        return data.get("result") or {}
