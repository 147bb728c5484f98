"""Tests for the Cryptomus payment client."""

from __future__ import annotations

import base64
import hashlib
import json

import httpx
import pytest
from tgdir.libs.cryptomus_client import (
    CryptomusAPIError,
    CryptomusClient,
    CryptomusClientError,
    sign_body,
)

API_KEY = "test-api-key"


def _client(handler) -> CryptomusClient:
    return CryptomusClient(
        merchant_id="merchant-1",
        api_key=API_KEY,
        base_url="https://api.cryptomus.test/v1",
        to_currency="USDT",
        max_retries=2,
        transport=httpx.MockTransport(handler),
        backoff_seconds=0,
    )


class TestSignatures:
    def test_sign_body(self) -> None:
        body = '{"amount":"9.99"}'
        encoded = base64.b64encode(body.encode()).decode()

        assert sign_body(body, API_KEY) == hashlib.md5((encoded + API_KEY).encode()).hexdigest()

    def test_verify_webhook_signature(self) -> None:
        payload = {
            "uuid": "pay-1",
            "order_id": "promotion_1",
            "status": "paid",
            "url": "https://pay.cryptomus.com/pay/pay-1",
        }
        signed_body = json.dumps(payload, separators=(",", ":")).replace("/", "\\/")
        payload["sign"] = sign_body(signed_body, API_KEY)
        client = _client(lambda request: httpx.Response(500))

        assert client.verify_signature(payload) is True
        assert client.verify_signature({**payload, "status": "paid_over"}) is False
        assert client.verify_signature({key: v for key, v in payload.items() if key != "sign"}) is False


class TestCreatePaymentIntent:
    async def test_creates_signed_invoice(self) -> None:
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["headers"] = request.headers
            captured["body"] = request.content.decode()
            return httpx.Response(
                200,
                json={
                    "state": 0,
                    "result": {"uuid": "pay-1", "url": "https://pay.cryptomus.com/pay/pay-1"},
                },
            )

        intent = await _client(handler).create_payment_intent(
            amount=24.99,
            currency="USD",
            order_id="promotion_1",
            return_url="https://example.com/done",
            callback_url="https://api.example.com/payments/cryptomus/callback",
            ttl_seconds=3600,
        )

        assert intent.payment_id == "pay-1"
        assert intent.payment_url == "https://pay.cryptomus.com/pay/pay-1"
        assert captured["path"] == "/v1/payment"
        assert captured["headers"]["merchant"] == "merchant-1"
        assert captured["headers"]["sign"] == sign_body(captured["body"], API_KEY)
        body = json.loads(captured["body"])
        assert body["amount"] == "24.99"
        assert body["currency"] == "USD"
        assert body["to_currency"] == "USDT"
        assert body["order_id"] == "promotion_1"
        assert body["lifetime"] == 3600
        assert body["url_return"] == "https://example.com/done"
        assert body["url_callback"].endswith("/payments/cryptomus/callback")

    async def test_api_error_state(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                422, json={"state": 1, "errors": {"amount": ["The amount field is required."]}}
            )

        with pytest.raises(CryptomusAPIError, match="amount field is required") as exc_info:
            await _client(handler).create_payment_intent(
                amount=0,
                currency="USD",
                order_id="promotion_1",
                return_url=None,
                callback_url=None,
                ttl_seconds=3600,
            )

        assert exc_info.value.status_code == 422

    async def test_missing_payment_url(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"state": 0, "result": {"uuid": "pay-1"}})

        with pytest.raises(CryptomusAPIError):
            await _client(handler).create_payment_intent(
                amount=9.99,
                currency="USD",
                order_id="promotion_1",
                return_url=None,
                callback_url=None,
                ttl_seconds=3600,
            )

    async def test_retries_then_succeeds(self) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                return httpx.Response(503)
            return httpx.Response(
                200, json={"state": 0, "result": {"uuid": "pay-2", "url": "https://pay/2"}}
            )

        intent = await _client(handler).create_payment_intent(
            amount=9.99,
            currency="USD",
            order_id="promotion_2",
            return_url=None,
            callback_url=None,
            ttl_seconds=60,
        )

        assert len(attempts) == 2
        assert intent.payment_id == "pay-2"

    async def test_missing_credentials(self) -> None:
        client = CryptomusClient(merchant_id="", api_key="")

        with pytest.raises(CryptomusClientError):
            await client.create_payment_intent(
                amount=9.99,
                currency="USD",
                order_id="promotion_1",
                return_url=None,
                callback_url=None,
                ttl_seconds=3600,
            )


class TestPaymentStatus:
    async def test_reports_paid(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/payment/info"
            assert json.loads(request.content) == {"uuid": "pay-1"}
            return httpx.Response(
                200,
                json={
                    "state": 0,
                    "result": {"uuid": "pay-1", "order_id": "promotion_1", "payment_status": "paid"},
                },
            )

        status = await _client(handler).get_payment_status("pay-1")

        assert status.order_id == "promotion_1"
        assert status.status == "paid"
        assert status.is_paid is True

    async def test_reports_unpaid(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"state": 0, "result": {"status": "check"}})

        status = await _client(handler).get_payment_status("pay-1")

        assert status.payment_id == "pay-1"
        assert status.is_paid is False
