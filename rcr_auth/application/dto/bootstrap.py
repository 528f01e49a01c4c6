from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum

from rcr_auth.domain.entities.navigation import NavigationIntent
from rcr_auth.domain.entities.user import AuthSession


class BootstrapState(str, Enum):
    INIT = "init"
    READING_PAYLOAD = "reading_payload"
    VALIDATING = "validating"
    ESTABLISHING_SESSION = "establishing_session"
    RESOLVING_DESTINATION = "resolving_destination"
    REDIRECTING = "redirecting"
    FAILED = "failed"


@dataclass(frozen=True)
class BootstrapSessionInput:
    location_hash: str | None
    role: str | None
    next_path: str | None
    error: str | None


@dataclass(frozen=True)
class BootstrapStep:
    state: BootstrapState
    progress: int
    status: str
    detail: str


@dataclass(frozen=True)
class RecoveryAction:
    label: str
    path: str


@dataclass(frozen=True)
class BootstrapSessionOutput:
    succeeded: bool
    state: BootstrapState
    progress: int
    steps: list[BootstrapStep]
    navigation: NavigationIntent | None
    session: AuthSession | None
    error_message: str | None
    actions: list[RecoveryAction]
    replace: bool
    role_sync: Future | None
