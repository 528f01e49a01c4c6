from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass

from rcr_auth.domain.entities.navigation import NavigationIntent
from rcr_auth.domain.entities.user import AuthSession


@dataclass(frozen=True)
class OAuthCallbackInput:
    origin: str
    code: str | None
    error: str | None
    error_description: str | None
    next_path: str | None
    role: str | None
    forwarded_host: str | None


@dataclass(frozen=True)
class RelayPageContext:
    storage_key: str
    loading_path: str
    error_path: str
    session_endpoint: str
    timeout_ms: int
    fallback_path: str
    signin_path: str


@dataclass(frozen=True)
class OAuthCallbackOutput:
    redirect_url: str | None
    relay_page: RelayPageContext | None
    session: AuthSession | None
    navigation: NavigationIntent | None
    error_message: str | None
    role_sync: Future | None
    code_exchange_attempted: bool
