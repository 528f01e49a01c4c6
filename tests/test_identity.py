from __future__ import annotations

from datetime import datetime, timezone

import pytest

from rcr_auth.domain.entities.user import AuthUser
from rcr_auth.domain.services.identity import build_user_identity, is_onboarding_complete


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_display_name_prefers_full_name():
    user = AuthUser(
        id="u1",
        email="alice@example.com",
        user_metadata={"full_name": "  Alice Uwase ", "name": "alice"},
    )

    identity = build_user_identity(user, now=NOW)

    assert identity.display_name == "Alice Uwase"


def test_display_name_falls_back_to_name_then_email():
    by_name = build_user_identity(
        AuthUser(id="u1", email="alice@example.com", user_metadata={"full_name": "  ", "name": "Alice"}),
        now=NOW,
    )
    by_email = build_user_identity(AuthUser(id="u2", email="bob@example.com"), now=NOW)

    assert by_name.display_name == "Alice"
    assert by_email.display_name == "bob@example.com"


def test_verified_and_timestamps():
    created_at = datetime(2025, 5, 1, tzinfo=timezone.utc)
    user = AuthUser(
        id="u1",
        email="alice@example.com",
        user_metadata={"avatar": "https://cdn.example/a.png", "role": "counselor"},
        email_confirmed_at=created_at,
        created_at=created_at,
    )

    identity = build_user_identity(user, now=NOW)

    assert identity.is_verified is True
    assert identity.created_at == created_at
    assert identity.updated_at == NOW
    assert identity.avatar_url == "https://cdn.example/a.png"
    assert identity.stored_role == "counselor"


def test_unconfirmed_email_is_not_verified():
    identity = build_user_identity(AuthUser(id="u1", email=None), now=NOW)

    assert identity.is_verified is False
    assert identity.email == ""
    assert identity.onboarding_completed is False


@pytest.mark.parametrize(
    ("metadata", "expected"),
    [
        ({"onboarding_completed": True}, True),
        ({"onboarding_completed": False}, False),
        ({"onboardingCompleted": "yes"}, True),
        ({"onboarding_complete": "Completed"}, True),
        ({"has_completed_onboarding": 1}, True),
        ({"has_completed_onboarding": 0}, False),
        ({"onboarding": {"isComplete": True}}, True),
        ({"onboarding_completed_at": "2026-01-01T00:00:00Z"}, True),
        ({"onboarding_completed": "no"}, False),
        ({}, False),
    ],
)
def test_onboarding_flag_variants(metadata, expected):
    assert is_onboarding_complete(metadata) is expected
