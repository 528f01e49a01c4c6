from __future__ import annotations

import json
import time

import httpx
import jwt
import pytest

from rcr_auth.domain.exceptions import AuthBackendError
from rcr_auth.infrastructure.clients.supabase_auth_client import (
    StoredAuthCookies,
    SupabaseAuthClient,
    SupabaseAuthClientSettings,
)


SETTINGS = SupabaseAuthClientSettings(
    base_url="https://project.supabase.co/",
    anon_key="anon-key",
    timeout_seconds=5,
)

USER_PAYLOAD = {
    "id": "user-1",
    "email": "user@example.com",
    "user_metadata": {"role": "patient"},
    "email_confirmed_at": "2024-01-02T03:04:05Z",
    "created_at": "2024-01-01T00:00:00Z",
}


def _token(exp_offset: int = 3600) -> str:
    return jwt.encode({"sub": "user-1", "exp": int(time.time()) + exp_offset}, "test-signing-secret-with-enough-bytes", algorithm="HS256")


def _client(handler, **cookies) -> SupabaseAuthClient:
    return SupabaseAuthClient(
        SETTINGS,
        cookies=StoredAuthCookies(**cookies),
        transport=httpx.MockTransport(handler),
    )


def test_exchange_code_posts_pkce_grant():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "access_token": "access",
                "refresh_token": "refresh",
                "expires_in": 3600,
                "expires_at": 1_900_000_000,
                "user": USER_PAYLOAD,
            },
        )

    result = _client(handler, code_verifier="verifier").exchange_code_for_session(code="auth-code")

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/auth/v1/token"
    assert request.url.params["grant_type"] == "pkce"
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content) == {"auth_code": "auth-code", "code_verifier": "verifier"}
    assert result.is_valid
    assert result.session.refresh_token == "refresh"
    assert result.session.expires_in == 3600
    assert result.user.email_confirmed_at is not None


def test_exchange_without_verifier_fails_before_request():
    def handler(_request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(AuthBackendError) as exc_info:
        _client(handler).exchange_code_for_session(code="auth-code")

    assert exc_info.value.status == 400


def test_error_body_message_is_surfaced():
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Code already used"})

    with pytest.raises(AuthBackendError) as exc_info:
        _client(handler, code_verifier="verifier").exchange_code_for_session(code="auth-code")

    assert exc_info.value.message == "Code already used"
    assert exc_info.value.status == 400


def test_set_session_validates_token_and_reads_expiry():
    access_token = _token()
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=USER_PAYLOAD)

    client = _client(handler)
    result = client.set_session(access_token=access_token, refresh_token="refresh")

    assert seen[0].method == "GET"
    assert seen[0].url.path == "/auth/v1/user"
    assert seen[0].headers["authorization"] == f"Bearer {access_token}"
    assert result.user.id == "user-1"
    assert result.session.expires_at == jwt.decode(access_token, options={"verify_signature": False})["exp"]
    assert 0 < result.session.expires_in <= 3600


def test_set_session_refreshes_rejected_token():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(f"{request.method} {request.url.path}")
        if request.method == "GET":
            return httpx.Response(401, json={"msg": "invalid JWT"})
        assert request.url.params["grant_type"] == "refresh_token"
        assert json.loads(request.content) == {"refresh_token": "refresh"}
        return httpx.Response(
            200,
            json={"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 60, "user": USER_PAYLOAD},
        )

    result = _client(handler).set_session(access_token="expired", refresh_token="refresh")

    assert paths == ["GET /auth/v1/user", "POST /auth/v1/token"]
    assert result.session.access_token == "new-access"


def test_set_session_without_refresh_token_propagates_rejection():
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"msg": "invalid JWT"})

    with pytest.raises(AuthBackendError) as exc_info:
        _client(handler).set_session(access_token="expired", refresh_token="")

    assert exc_info.value.status == 401
    assert exc_info.value.message == "invalid JWT"


def test_get_session_without_cookie_skips_backend():
    def handler(_request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert _client(handler).get_session() is None


def test_get_session_from_cookies():
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=USER_PAYLOAD)

    session = _client(handler, access_token=_token(), refresh_token="refresh").get_session()

    assert session is not None
    assert session.user.email == "user@example.com"


def test_update_user_requires_session():
    def handler(_request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(AuthBackendError) as exc_info:
        _client(handler).update_user(data={"role": "patient"})

    assert exc_info.value.status == 401


def test_update_user_puts_metadata():
    access_token = _token()
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "PUT":
            body = json.loads(request.content)
            return httpx.Response(200, json={**USER_PAYLOAD, "user_metadata": body["data"]})
        return httpx.Response(200, json=USER_PAYLOAD)

    client = _client(handler)
    client.set_session(access_token=access_token, refresh_token="refresh")
    user = client.update_user(data={"role": "counselor"})

    put = seen[-1]
    assert put.method == "PUT"
    assert put.headers["authorization"] == f"Bearer {access_token}"
    assert json.loads(put.content) == {"data": {"role": "counselor"}}
    assert user.user_metadata == {"role": "counselor"}


def test_transport_error_becomes_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AuthBackendError) as exc_info:
        _client(handler).set_session(access_token="token", refresh_token="")

    assert exc_info.value.status is None
    assert "unreachable" in exc_info.value.message


def test_invalid_json_is_rejected():
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(AuthBackendError):
        _client(handler).set_session(access_token="token", refresh_token="")
