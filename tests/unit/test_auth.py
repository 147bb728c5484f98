import pytest
from tgdir.core.auth import TokenError, create_access_token, decode_access_token


def test_create_and_decode_token_roundtrip() -> None:
    token = create_access_token(
        "user-123", roles=["user"], username="alice", email="alice@example.com"
    )

    payload = decode_access_token(token)

    assert payload["sub"] == "user-123"
    assert payload["roles"] == ["user"]
    assert payload["username"] == "alice"
    assert payload["email"] == "alice@example.com"


def test_create_token_rejects_unknown_role() -> None:
    with pytest.raises(TokenError):
        create_access_token("user-123", roles=["student"])


def test_decode_rejects_garbage_token() -> None:
    with pytest.raises(TokenError):
        decode_access_token("not-a-jwt")
