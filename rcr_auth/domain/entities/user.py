from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


UserRole = Literal["patient", "counselor", "admin"]

DEFAULT_ROLE: UserRole = "patient"
GUEST_ROLE = "guest"
SIGNUP_ROLES: frozenset[str] = frozenset({"patient", "counselor"})


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None
    user_metadata: dict[str, Any] = field(default_factory=dict)
    email_confirmed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    expires_in: int | None
    expires_at: int | None
    user: AuthUser


@dataclass(frozen=True)
class SessionResult:
    session: AuthSession | None
    user: AuthUser | None

    @property
    def is_valid(self) -> bool:
        return self.session is not None and self.user is not None


@dataclass(frozen=True)
class UserIdentity:
    id: str
    email: str
    stored_role: str | None
    display_name: str
    avatar_url: str | None
    is_verified: bool
    onboarding_completed: bool
    created_at: datetime
    updated_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)
