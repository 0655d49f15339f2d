from __future__ import annotations

import base64
import json

import pytest

from bistro.core.constants import ErrorKind
from bistro.core.crypto import HmacSha256Signer
from bistro.core.exceptions import TokenExpired, TokenMalformed, TokenSignatureMismatch
from bistro.services.session_codec import SessionTokenCodec

from conftest import FakeClock, flip_char

HOUR_MS = 3600 * 1000
DURATION_MS = 12 * HOUR_MS
SOON_MS = 30 * 60 * 1000


class FixedRandom:
    def random_bytes(self, n: int) -> bytes:
        return bytes(range(n))


@pytest.fixture()
def codec(clock: FakeClock) -> SessionTokenCodec:
    return SessionTokenCodec(
        signer=HmacSha256Signer("k"),
        session_duration_ms=DURATION_MS,
        expiring_soon_ms=SOON_MS,
        clock=clock,
        random_source=FixedRandom(),
    )


def _envelope(token: str) -> dict:
    padded = token + "=" * (-len(token) % 4)
    return json.loads(base64.urlsafe_b64decode(padded))


def _encode(envelope: dict) -> str:
    raw = json.dumps(envelope, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def test_issue_then_validate_returns_session(codec: SessionTokenCodec, clock: FakeClock) -> None:
    session = codec.validate(codec.issue())
    assert session is not None
    assert session.issued_at == clock.now
    assert session.expires_at == clock.now + DURATION_MS
    assert session.nonce == bytes(range(16)).hex()


def test_token_is_cookie_safe(codec: SessionTokenCodec) -> None:
    token = codec.issue()
    assert "=" not in token and "+" not in token and "/" not in token


def test_wire_format_has_data_and_hex_signature(codec: SessionTokenCodec) -> None:
    envelope = _envelope(codec.issue())
    assert set(envelope) == {"data", "signature"}
    assert set(envelope["data"]) == {"issuedAt", "expiresAt", "nonce"}
    int(envelope["signature"], 16)
    assert len(envelope["signature"]) == 64


def test_every_single_character_change_is_rejected(codec: SessionTokenCodec) -> None:
    token = codec.issue()
    for i in range(len(token)):
        assert codec.validate(flip_char(token, i)) is None, f"index {i} accepted"


def test_modified_expiry_fails_signature(codec: SessionTokenCodec) -> None:
    envelope = _envelope(codec.issue())
    envelope["data"]["expiresAt"] += HOUR_MS
    with pytest.raises(TokenSignatureMismatch):
        codec.decode(_encode(envelope))


def test_token_signed_with_other_key_is_rejected(codec: SessionTokenCodec, clock: FakeClock) -> None:
    other = SessionTokenCodec(HmacSha256Signer("other"), DURATION_MS, SOON_MS, clock=clock)
    assert codec.validate(other.issue()) is None


@pytest.mark.parametrize("token", [None, "", "not base64!", "e30", _encode({"data": {}})])
def test_garbage_is_malformed(codec: SessionTokenCodec, token) -> None:
    with pytest.raises(TokenMalformed):
        codec.decode(token)
    assert codec.validate(token) is None


def _raw_token(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


@pytest.mark.parametrize("depth", [700, 3000])
def test_deeply_nested_json_is_malformed(codec: SessionTokenCodec, depth: int) -> None:
    token = _raw_token(b"[" * depth)
    result = codec.check(token)
    assert not result.valid
    assert result.reason is ErrorKind.TOKEN_MALFORMED


def test_recursion_error_while_parsing_is_malformed(
    codec: SessionTokenCodec, monkeypatch: pytest.MonkeyPatch
) -> None:
    def explode(*args, **kwargs):
        raise RecursionError("maximum recursion depth exceeded")

    monkeypatch.setattr("bistro.services.session_codec.json.loads", explode)
    assert codec.check(_raw_token(b"[[[[")).reason is ErrorKind.TOKEN_MALFORMED


def test_oversized_token_is_malformed(codec: SessionTokenCodec) -> None:
    envelope = _envelope(codec.issue())
    envelope["padding"] = "x" * 2000
    with pytest.raises(TokenMalformed, match="too long"):
        codec.decode(_encode(envelope))


def test_extra_data_fields_are_malformed(codec: SessionTokenCodec) -> None:
    envelope = _envelope(codec.issue())
    envelope["data"]["role"] = "owner"
    assert codec.check(_encode(envelope)).reason is ErrorKind.TOKEN_MALFORMED


def test_expiry_boundary_is_inclusive(codec: SessionTokenCodec, clock: FakeClock) -> None:
    token = codec.issue()

    clock.advance(DURATION_MS - 1)
    assert codec.validate(token) is not None

    clock.advance(1)
    with pytest.raises(TokenExpired):
        codec.decode(token)

    clock.advance(1)
    assert codec.validate(token) is None


def test_check_reports_reason(codec: SessionTokenCodec, clock: FakeClock) -> None:
    token = codec.issue()
    assert codec.check(token).valid
    clock.advance(DURATION_MS)
    result = codec.check(token)
    assert not result.valid
    assert result.reason is ErrorKind.TOKEN_EXPIRED


def test_expiring_soon_threshold(codec: SessionTokenCodec, clock: FakeClock) -> None:
    session = codec.validate(codec.issue())
    assert session is not None
    assert codec.is_expiring_soon(session) is False

    clock.advance(DURATION_MS - SOON_MS)
    assert codec.is_expiring_soon(session) is False

    clock.advance(1)
    assert codec.is_expiring_soon(session) is True


def test_nonces_differ_with_system_random(clock: FakeClock) -> None:
    codec = SessionTokenCodec(HmacSha256Signer("k"), DURATION_MS, SOON_MS, clock=clock)
    assert codec.issue() != codec.issue()


def test_empty_signing_secret_is_refused() -> None:
    with pytest.raises(ValueError):
        HmacSha256Signer("")
