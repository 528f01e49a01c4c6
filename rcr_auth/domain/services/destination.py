from __future__ import annotations

from rcr_auth.domain.entities.navigation import NavigationIntent
from rcr_auth.domain.entities.user import (
    DEFAULT_ROLE,
    GUEST_ROLE,
    SIGNUP_ROLES,
    UserIdentity,
)


ROOT_PATH = "/"

ONBOARDING_ROUTES = {
    "patient": "/onboarding/patient",
    "counselor": "/onboarding/counselor",
}

DASHBOARD_ROUTES = {
    "patient": "/dashboard/patient",
    "counselor": "/dashboard/counselor",
    "admin": "/dashboard/admin",
}


def normalize_role_hint(role_hint: str | None) -> str | None:
    """Only signup roles may be requested from the outside."""
    if not role_hint:
        return None
    role = role_hint.strip().lower()
    if role not in SIGNUP_ROLES:
        return None
    return role


def resolve_role(stored_role: str | None, role_hint: str | None = None) -> str:
    if stored_role and stored_role != GUEST_ROLE:
        return stored_role
    return normalize_role_hint(role_hint) or DEFAULT_ROLE


def onboarding_route(role: str) -> str:
    return ONBOARDING_ROUTES.get(role, ONBOARDING_ROUTES[DEFAULT_ROLE])


def dashboard_route(role: str) -> str:
    return DASHBOARD_ROUTES.get(role, ROOT_PATH)


def is_safe_path(path: str | None) -> bool:
    if not path or not path.startswith("/"):
        return False
    # "//host" and "/\host" are protocol-relative in browsers.
    return not path.startswith("//") and not path.startswith("/\\")


def safe_path(path: str | None) -> str:
    return path if is_safe_path(path) else ROOT_PATH


def resolve_destination(
    identity: UserIdentity,
    role_hint: str | None = None,
    requested_next: str | None = None,
) -> NavigationIntent:
    role = resolve_role(identity.stored_role, role_hint)

    if not identity.onboarding_completed:
        return NavigationIntent(
            path=safe_path(onboarding_route(role)),
            reason="needs-onboarding",
            role=role,
        )

    if is_safe_path(requested_next) and requested_next != ROOT_PATH:
        return NavigationIntent(path=requested_next, reason="explicit-next", role=role)

    return NavigationIntent(path=safe_path(dashboard_route(role)), reason="dashboard", role=role)
