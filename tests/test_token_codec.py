from __future__ import annotations

import base64
import json
import time

from services.session.token_codec import decode_token, is_token_valid, token_needs_refresh


def _token_with_exp(exp: float) -> str:
    payload = base64.b64encode(json.dumps({"sub": "u", "client_id": "c", "exp": exp}).encode()).decode()
    return f"header.{payload}.sig"


def test_decode_token_reads_claims(make_token) -> None:
    claims = decode_token(make_token(sub="user-42", client_id="client-x"))
    assert claims is not None
    assert claims.subject == "user-42"
    assert claims.client_id == "client-x"
    assert claims.expires_at is not None


def test_decode_token_accepts_standard_alphabet_with_padding() -> None:
    claims = decode_token(_token_with_exp(2_000_000_000))
    assert claims is not None
    assert claims.expires_at == 2_000_000_000


def test_decode_token_rejects_wrong_segment_counts() -> None:
    assert decode_token("only.two") is None
    assert decode_token("a.b.c.d") is None
    assert decode_token("") is None
    assert decode_token(None) is None


def test_decode_token_rejects_garbage_payloads() -> None:
    assert decode_token("a.!!!not-base64!!!.c") is None
    not_json = base64.b64encode(b"not json").decode()
    assert decode_token(f"a.{not_json}.c") is None
    a_list = base64.b64encode(b"[1, 2]").decode()
    assert decode_token(f"a.{a_list}.c") is None


def test_is_token_valid_follows_expiry(make_token) -> None:
    assert is_token_valid(make_token(expires_in=3600)) is True
    assert is_token_valid(make_token(expires_in=-3600)) is False
    assert is_token_valid(make_token(expires_in=None)) is False
    assert is_token_valid("not.a-token") is False


def test_needs_refresh_inside_the_24h_window() -> None:
    now = time.time()
    assert token_needs_refresh(_token_with_exp(now + 3600), now=now) is True
    assert token_needs_refresh(_token_with_exp(now - 3600), now=now) is True
    assert token_needs_refresh(None, now=now) is True
    assert token_needs_refresh("garbage", now=now) is True


def test_needs_refresh_false_from_exactly_24h() -> None:
    now = 1_700_000_000.0
    assert token_needs_refresh(_token_with_exp(now + 24 * 3600), now=now) is False
    assert token_needs_refresh(_token_with_exp(now + 24 * 3600 - 1), now=now) is True
    assert token_needs_refresh(_token_with_exp(now + 5 * 24 * 3600), now=now) is False
