import base64
import hashlib
import hmac
import json

import pytest

from appforge.auth.tokens import issue_token, verify_token

SECRET = "s3cret"
ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _flip(ch: str) -> str:
    # XOR the top bit of the 6-bit value so the decoded bytes change too.
    return ALPHABET[ALPHABET.index(ch) ^ 32]


def test_issue_then_verify_recovers_user_id():
    token = issue_token("user-123", SECRET, issued_at=1_700_000_000)
    claims = verify_token(token, SECRET)
    assert claims is not None
    assert claims.user_id == "user-123"
    assert claims.issued_at == 1_700_000_000


def test_token_is_two_base64url_segments():
    token = issue_token("u1", SECRET)
    payload, sig = token.split(".")
    assert set(payload + sig) <= set(ALPHABET)
    assert json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))["uid"] == "u1"


def test_every_single_character_change_is_rejected():
    token = issue_token("user-123", SECRET)
    for i, ch in enumerate(token):
        if ch == ".":
            continue
        tampered = token[:i] + _flip(ch) + token[i + 1 :]
        assert verify_token(tampered, SECRET) is None, i


def test_wrong_secret_is_rejected():
    token = issue_token("u1", SECRET)
    assert verify_token(token, "other") is None


def test_hand_built_token_signed_with_other_secret_is_rejected():
    payload = _b64(json.dumps({"uid": "admin", "iat": 0}).encode("utf-8"))
    forged = payload + "." + _b64(hmac.new(b"attacker", payload.encode("ascii"), hashlib.sha256).digest())
    assert verify_token(forged, SECRET) is None

    genuine = payload + "." + _b64(hmac.new(SECRET.encode(), payload.encode("ascii"), hashlib.sha256).digest())
    claims = verify_token(genuine, SECRET)
    assert claims is not None and claims.user_id == "admin"


def test_signed_payload_without_user_id_is_invalid():
    payload = _b64(json.dumps({"iat": 0}).encode("utf-8"))
    token = payload + "." + _b64(hmac.new(SECRET.encode(), payload.encode("ascii"), hashlib.sha256).digest())
    assert verify_token(token, SECRET) is None


@pytest.mark.parametrize("token", ["", None, "nodot", ".", "a.b", "a.b.c", "ñ.ñ", "%%%.%%%"])
def test_malformed_tokens_are_invalid(token):
    assert verify_token(token, SECRET) is None


def test_signing_requires_a_secret():
    with pytest.raises(RuntimeError):
        issue_token("u1", "")


def test_tokens_for_same_user_and_second_differ():
    a = issue_token("u1", SECRET, issued_at=5)
    b = issue_token("u1", SECRET, issued_at=5)
    assert a != b
    assert verify_token(a, SECRET).user_id == verify_token(b, SECRET).user_id == "u1"


def test_compressible_payload_still_has_two_segments():
    token = issue_token("user-" + "a" * 120, SECRET)
    assert token.count(".") == 1
    assert not token.startswith(".")
    assert verify_token(token, SECRET).user_id == "user-" + "a" * 120


def test_compressed_form_is_rejected_even_when_signed():
    from itsdangerous import URLSafeSerializer

    s = URLSafeSerializer(SECRET, signer_kwargs={"key_derivation": "none", "digest_method": hashlib.sha256})
    token = s.dumps({"uid": "user-" + "a" * 120, "iat": 0})
    assert token.startswith(".")
    assert verify_token(token, SECRET) is None
