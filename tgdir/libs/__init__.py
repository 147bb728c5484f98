"""Shared library helpers."""

from tgdir.libs.cryptomus_client import (
    CryptomusClient,
    CryptomusClientError,
    PaymentGatewayProtocol,
    PaymentIntent,
    PaymentStatus,
)
from tgdir.libs.telegram_client import (
    GroupNotFoundError,
    MetadataFetcherProtocol,
    TelegramClient,
    TelegramClientError,
)

__all__ = [
    "CryptomusClient",
    "CryptomusClientError",
    "GroupNotFoundError",
    "MetadataFetcherProtocol",
    "PaymentGatewayProtocol",
    "PaymentIntent",
    "PaymentStatus",
    "TelegramClient",
    "TelegramClientError",
]
