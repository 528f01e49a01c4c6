from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import time
from typing import Any

import httpx
import jwt

from rcr_auth.application.ports.auth_backend_port import AuthBackendPort
from rcr_auth.domain.entities.user import AuthSession, AuthUser, SessionResult
from rcr_auth.domain.exceptions import AuthBackendError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupabaseAuthClientSettings:
    base_url: str
    anon_key: str
    timeout_seconds: float


@dataclass(frozen=True)
class StoredAuthCookies:
    access_token: str | None = None
    refresh_token: str | None = None
    code_verifier: str | None = None


class SupabaseAuthClient(AuthBackendPort):
    """GoTrue REST client bound to the credentials of a single request."""

    def __init__(
        self,
        settings: SupabaseAuthClientSettings,
        *,
        cookies: StoredAuthCookies | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self._settings = settings
        self._cookies = cookies or StoredAuthCookies()
        self._transport = transport
        self._current: AuthSession | None = None

    def get_session(self) -> AuthSession | None:
        access_token = self._cookies.access_token
        refresh_token = self._cookies.refresh_token or ""
        if not access_token:
            return None

        result = self._validate_or_refresh(access_token=access_token, refresh_token=refresh_token)
        return result.session

    def exchange_code_for_session(self, *, code: str) -> SessionResult:
        if not self._cookies.code_verifier:
            raise AuthBackendError(
                "invalid request: both auth code and code verifier should be non-empty",
                status=400,
            )
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": self._cookies.code_verifier},
        )
        return self._remember(_parse_token_response(payload))

    def set_session(self, *, access_token: str, refresh_token: str) -> SessionResult:
        if not access_token:
            raise AuthBackendError("Access token is required.", status=400)
        return self._validate_or_refresh(access_token=access_token, refresh_token=refresh_token)

    def update_user(self, *, data: dict[str, Any]) -> AuthUser:
        if self._current is None:
            raise AuthBackendError("Auth session missing!", status=401)
        payload = self._request(
            "PUT",
            "/auth/v1/user",
            json={"data": data},
            bearer=self._current.access_token,
        )
        return _parse_user(payload)

    def _validate_or_refresh(self, *, access_token: str, refresh_token: str) -> SessionResult:
        try:
            user_payload = self._request("GET", "/auth/v1/user", bearer=access_token)
        except AuthBackendError as exc:
            if exc.status not in (401, 403) or not refresh_token:
                raise
            logger.info("supabase_auth_client: access_token_rejected refreshing status=%s", exc.status)
            return self._refresh(refresh_token=refresh_token)

        user = _parse_user(user_payload)
        expires_at = _token_expiry(access_token)
        session = AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=_expires_in(expires_at),
            expires_at=expires_at,
            user=user,
        )
        return self._remember(SessionResult(session=session, user=user))

    def _refresh(self, *, refresh_token: str) -> SessionResult:
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return self._remember(_parse_token_response(payload))

    def _remember(self, result: SessionResult) -> SessionResult:
        if result.session is not None:
            self._current = result.session
        return result

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
        bearer: str | None = None,
    ) -> dict:
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {bearer or self._settings.anon_key}",
        }
        url = f"{self._settings.base_url.rstrip('/')}{path}"
        try:
            with httpx.Client(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                response = client.request(method, url, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("supabase_auth_client: transport_error method=%s path=%s error=%s", method, path, exc)
            raise AuthBackendError(f"Auth backend unreachable: {exc}") from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError as exc:
            raise AuthBackendError(
                "Auth backend returned an invalid response.",
                status=response.status_code,
            ) from exc

        if response.is_error:
            raise AuthBackendError(_error_message(payload, response), status=response.status_code)
        if not isinstance(payload, dict):
            raise AuthBackendError("Auth backend returned an invalid response.", status=response.status_code)
        return payload


def _error_message(payload: Any, response: httpx.Response) -> str:
    if isinstance(payload, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"Auth backend request failed with status {response.status_code}."


def _parse_token_response(payload: dict) -> SessionResult:
    user_payload = payload.get("user")
    user = _parse_user(user_payload) if isinstance(user_payload, dict) and user_payload.get("id") else None

    access_token = payload.get("access_token")
    if not access_token or user is None:
        return SessionResult(session=None, user=user)

    expires_in = payload.get("expires_in")
    expires_at = payload.get("expires_at") or _token_expiry(access_token)
    session = AuthSession(
        access_token=str(access_token),
        refresh_token=str(payload.get("refresh_token") or ""),
        expires_in=int(expires_in) if expires_in is not None else _expires_in(expires_at),
        expires_at=int(expires_at) if expires_at is not None else None,
        user=user,
    )
    return SessionResult(session=session, user=user)


def _parse_user(payload: dict) -> AuthUser:
    user_id = payload.get("id")
    if not user_id:
        raise AuthBackendError("Auth backend user payload is missing an id.")
    metadata = payload.get("user_metadata")
    return AuthUser(
        id=str(user_id),
        email=payload.get("email"),
        user_metadata=dict(metadata) if isinstance(metadata, dict) else {},
        email_confirmed_at=_parse_timestamp(payload.get("email_confirmed_at")),
        created_at=_parse_timestamp(payload.get("created_at")),
        updated_at=_parse_timestamp(payload.get("updated_at")),
    )


def _parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("supabase_auth_client: unparseable_timestamp value=%s", value)
        return None


def _token_expiry(access_token: str) -> int | None:
    # Signature is checked by the backend on every call; only the exp claim is read here.
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return int(exp) if isinstance(exp, (int, float)) else None


def _expires_in(expires_at: int | None) -> int | None:
    if expires_at is None:
        return None
    return max(int(expires_at - time.time()), 0)
