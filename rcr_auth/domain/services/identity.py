from __future__ import annotations

from datetime import datetime
from typing import Any

from rcr_auth.domain.entities.user import AuthUser, UserIdentity


ONBOARDING_FLAG_KEYS = (
    "onboarding_completed",
    "onboardingCompleted",
    "onboarding_complete",
    "has_completed_onboarding",
)
NESTED_ONBOARDING_FLAG_KEYS = ("completed", "isComplete", "is_completed")
ONBOARDING_TIMESTAMP_KEYS = ("onboarding_completed_at", "onboardingCompletedAt")
TRUTHY_FLAG_STRINGS = frozenset({"true", "1", "yes", "completed"})


def metadata_string(value: Any) -> str | None:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return None


def _onboarding_flag(metadata: dict[str, Any]) -> Any:
    for key in ONBOARDING_FLAG_KEYS:
        if metadata.get(key) is not None:
            return metadata[key]
    nested = metadata.get("onboarding")
    if isinstance(nested, dict):
        for key in NESTED_ONBOARDING_FLAG_KEYS:
            if nested.get(key) is not None:
                return nested[key]
    return None


def is_onboarding_complete(metadata: dict[str, Any] | None) -> bool:
    if not metadata:
        return False

    flag = _onboarding_flag(metadata)
    if isinstance(flag, bool):
        return flag
    if isinstance(flag, str):
        return flag.strip().lower() in TRUTHY_FLAG_STRINGS
    if isinstance(flag, (int, float)):
        return flag == 1

    return any(metadata.get(key) for key in ONBOARDING_TIMESTAMP_KEYS)


def build_user_identity(user: AuthUser, *, now: datetime) -> UserIdentity:
    metadata = dict(user.user_metadata or {})
    email = user.email or ""
    display_name = (
        metadata_string(metadata.get("full_name"))
        or metadata_string(metadata.get("name"))
        or email
    )
    avatar_url = metadata_string(metadata.get("avatar_url")) or metadata_string(metadata.get("avatar"))

    return UserIdentity(
        id=user.id,
        email=email,
        stored_role=metadata_string(metadata.get("role")),
        display_name=display_name,
        avatar_url=avatar_url,
        is_verified=user.email_confirmed_at is not None,
        onboarding_completed=is_onboarding_complete(metadata),
        created_at=user.created_at or now,
        updated_at=user.updated_at or now,
        metadata=metadata,
    )
