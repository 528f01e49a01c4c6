from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from functools import partial
from typing import Any

from rcr_auth.application.ports.auth_backend_port import AuthBackendPort
from rcr_auth.domain.entities.user import GUEST_ROLE, AuthUser
from rcr_auth.domain.services.destination import normalize_role_hint


logger = logging.getLogger(__name__)


def role_update_patch(user: AuthUser, role_hint: str | None) -> dict[str, Any] | None:
    """Metadata patch for a signup role hint, or None when nothing should change."""
    role = normalize_role_hint(role_hint)
    if role is None:
        return None
    stored_role = (user.user_metadata or {}).get("role")
    if stored_role and stored_role != GUEST_ROLE:
        return None
    return {**(user.user_metadata or {}), "role": role}


class RoleMetadataSync:
    """Detached role propagation.

    The returned future is the only handle on the update; failures are logged
    from its done-callback and never reach the sign-in flow.
    """

    def __init__(self, *, executor: Executor):
        self._executor = executor

    def schedule(
        self,
        *,
        auth_backend: AuthBackendPort,
        user: AuthUser,
        role_hint: str | None,
    ) -> Future | None:
        patch = role_update_patch(user, role_hint)
        if patch is None:
            return None

        try:
            future = self._executor.submit(auth_backend.update_user, data=patch)
        except RuntimeError as exc:
            logger.warning("role_sync: schedule_failed user_id=%s error=%s", user.id, exc)
            return None

        future.add_done_callback(partial(_log_outcome, user_id=user.id, role=patch["role"]))
        return future


def _log_outcome(future: Future, *, user_id: str, role: str) -> None:
    if future.cancelled():
        logger.warning("role_sync: cancelled user_id=%s", user_id)
        return
    exc = future.exception()
    if exc is not None:
        logger.warning("role_sync: update_failed user_id=%s role=%s error=%s", user_id, role, exc)
        return
    logger.info("role_sync: updated user_id=%s role=%s", user_id, role)
