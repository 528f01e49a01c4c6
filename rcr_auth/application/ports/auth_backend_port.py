from __future__ import annotations

from typing import Any, Protocol

from rcr_auth.domain.entities.user import AuthSession, AuthUser, SessionResult


class AuthBackendPort(Protocol):
    def get_session(self) -> AuthSession | None:
        ...

    def exchange_code_for_session(self, *, code: str) -> SessionResult:
        ...

    def set_session(self, *, access_token: str, refresh_token: str) -> SessionResult:
        ...

    def update_user(self, *, data: dict[str, Any]) -> AuthUser:
        ...
