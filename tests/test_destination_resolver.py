from __future__ import annotations

from datetime import datetime, timezone

import pytest

from rcr_auth.domain.entities.user import UserIdentity
from rcr_auth.domain.services.destination import (
    dashboard_route,
    is_safe_path,
    onboarding_route,
    resolve_destination,
    resolve_role,
)


def _identity(*, role: str | None = None, onboarding_completed: bool = True) -> UserIdentity:
    now = datetime.now(timezone.utc)
    return UserIdentity(
        id="u1",
        email="alice@example.com",
        stored_role=role,
        display_name="Alice",
        avatar_url=None,
        is_verified=True,
        onboarding_completed=onboarding_completed,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.parametrize(
    "unsafe_next",
    ["https://evil.example", "", "//evil.example", "/\\evil.example", "evil.example/path", None],
)
def test_unsafe_next_falls_back_to_role_dashboard(unsafe_next):
    intent = resolve_destination(_identity(role="patient"), requested_next=unsafe_next)

    assert intent.path == "/dashboard/patient"
    assert intent.reason == "dashboard"


def test_unsafe_next_for_unknown_role_resolves_to_site_root():
    intent = resolve_destination(_identity(role="superuser"), requested_next="https://evil.example")

    assert intent.path == "/"


@pytest.mark.parametrize(
    "requested_next",
    ["/dashboard/patient/settings", "/dashboard/admin", "https://evil.example", None],
)
def test_incomplete_onboarding_overrides_requested_next(requested_next):
    intent = resolve_destination(
        _identity(role="patient", onboarding_completed=False),
        requested_next=requested_next,
    )

    assert intent.path == "/onboarding/patient"
    assert intent.reason == "needs-onboarding"


def test_counselor_without_onboarding_goes_to_counselor_onboarding():
    intent = resolve_destination(_identity(role="counselor", onboarding_completed=False))

    assert intent.path == "/onboarding/counselor"


def test_role_defaults_to_patient_without_metadata_or_hint():
    identity = _identity(role=None, onboarding_completed=False)

    intent = resolve_destination(identity)

    assert intent.role == "patient"
    assert intent.path == "/onboarding/patient"


def test_role_hint_applies_when_metadata_has_no_role():
    intent = resolve_destination(_identity(role=None), role_hint="counselor")

    assert intent.role == "counselor"
    assert intent.path == "/dashboard/counselor"


def test_metadata_role_wins_over_hint():
    intent = resolve_destination(_identity(role="patient"), role_hint="counselor")

    assert intent.role == "patient"


def test_admin_hint_is_ignored():
    intent = resolve_destination(_identity(role=None), role_hint="admin")

    assert intent.role == "patient"
    assert intent.path == "/dashboard/patient"


def test_guest_role_is_treated_as_missing():
    assert resolve_role("guest", "counselor") == "counselor"
    assert resolve_role("guest", None) == "patient"


def test_explicit_next_is_used_once_onboarded():
    intent = resolve_destination(_identity(role="patient"), requested_next="/dashboard/patient/sessions")

    assert intent.path == "/dashboard/patient/sessions"
    assert intent.reason == "explicit-next"


def test_root_next_uses_role_dashboard():
    intent = resolve_destination(_identity(role="admin"), requested_next="/")

    assert intent.path == "/dashboard/admin"
    assert intent.reason == "dashboard"


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        ("patient", "/dashboard/patient"),
        ("counselor", "/dashboard/counselor"),
        ("admin", "/dashboard/admin"),
        ("guest", "/"),
    ],
)
def test_dashboard_route_per_role(role, expected):
    assert dashboard_route(role) == expected


def test_onboarding_route_defaults_to_patient():
    assert onboarding_route("admin") == "/onboarding/patient"


def test_is_safe_path():
    assert is_safe_path("/onboarding/patient")
    assert not is_safe_path("//evil.example")
    assert not is_safe_path("")
