from __future__ import annotations

import pytest

from bistro.services.credentials import CredentialVerifier, hash_password


def test_plaintext_secret_accepts_exact_match_only() -> None:
    verifier = CredentialVerifier(secret="s3cret")
    assert verifier.verify("s3cret") is True
    assert verifier.verify("s3cret ") is False
    assert verifier.verify("S3CRET") is False
    assert verifier.verify("wrong") is False


@pytest.mark.parametrize("password", [None, "", 123])
def test_unusable_input_is_rejected_without_raising(password) -> None:
    verifier = CredentialVerifier(secret="s3cret")
    assert verifier.verify(password) is False


def test_unconfigured_verifier_rejects_everything() -> None:
    assert CredentialVerifier().verify("anything") is False


def test_pbkdf2_hash_takes_precedence_over_secret() -> None:
    stored = hash_password("hashed-pass", salt=b"\x01" * 32)
    verifier = CredentialVerifier(secret="plain-pass", password_hash=stored)
    assert verifier.verify("hashed-pass") is True
    assert verifier.verify("plain-pass") is False


def test_malformed_hash_fails_closed() -> None:
    verifier = CredentialVerifier(password_hash="not-a-valid-hash")
    assert verifier.verify("not-a-valid-hash") is False


def test_hash_password_format() -> None:
    salt_hex, digest_hex = hash_password("pw").split(":")
    assert len(bytes.fromhex(salt_hex)) == 32
    assert len(bytes.fromhex(digest_hex)) == 32


def test_uppercase_hex_hash_is_accepted() -> None:
    stored = hash_password("hashed-pass", salt=b"\x02" * 32)
    verifier = CredentialVerifier(password_hash=stored.upper())
    assert verifier.verify("hashed-pass") is True
    assert verifier.verify("other") is False


@pytest.mark.parametrize("digest", ["é" * 64, "zz" * 32, ""])
def test_non_hex_digest_fails_closed_without_raising(digest: str) -> None:
    verifier = CredentialVerifier(password_hash=f"{'01' * 32}:{digest}")
    assert verifier.verify("anything") is False
