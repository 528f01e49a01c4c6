from __future__ import annotations

import logging

from rcr_auth.application.dto.bootstrap import (
    BootstrapSessionInput,
    BootstrapSessionOutput,
    BootstrapState,
    BootstrapStep,
    RecoveryAction,
)
from rcr_auth.application.ports.auth_backend_port import AuthBackendPort
from rcr_auth.application.ports.relay_storage_port import RelayStoragePort
from rcr_auth.domain.entities.auth_payload import AuthPayload
from rcr_auth.domain.exceptions import AuthBackendError, PayloadStorageError, SessionExchangeError
from rcr_auth.domain.services.destination import resolve_destination
from rcr_auth.domain.services.identity import build_user_identity
from rcr_auth.shared.config import Settings

from .auth_common import OAUTH_STORAGE_KEY, utcnow
from .role_sync import RoleMetadataSync


logger = logging.getLogger(__name__)


NOT_CONFIGURED_MESSAGE = "Our authentication service is not configured. Please try again later."
STORAGE_UNREADABLE_MESSAGE = "We could not access secure storage in this browser. Please try signing in again."
PAYLOAD_MISSING_MESSAGE = "We could not find your sign-in details. Please start the sign-in flow again."
TOKEN_MISSING_MESSAGE = "We could not find the secure token we need. Please try again."
SESSION_FAILED_MESSAGE = "We could not establish your secure session. Please sign in again."
UNEXPECTED_MESSAGE = "Something went wrong while finishing your sign in. Please try again."

FAILED_STATUS = "We need a quick restart"


class BootstrapProgress:
    """Step log whose progress only moves forward until a terminal failure."""

    def __init__(self):
        self.steps: list[BootstrapStep] = []
        self.state = BootstrapState.INIT
        self.progress = 0

    def advance(self, state: BootstrapState, progress: int, status: str, detail: str) -> None:
        if self.state is BootstrapState.FAILED:
            raise RuntimeError("Bootstrap already failed.")
        value = max(0, min(100, int(progress)))
        if value < self.progress:
            raise ValueError(f"Progress cannot go backward ({self.progress} -> {value}).")
        self._record(state, value, status, detail)

    def fail(self, detail: str) -> None:
        self._record(BootstrapState.FAILED, 0, FAILED_STATUS, detail)

    def _record(self, state: BootstrapState, progress: int, status: str, detail: str) -> None:
        self.state = state
        self.progress = progress
        self.steps.append(BootstrapStep(state=state, progress=progress, status=status, detail=detail))


class BootstrapSessionUseCase:
    def __init__(
        self,
        *,
        settings: Settings,
        auth_backend: AuthBackendPort,
        relay_storage: RelayStoragePort,
        role_sync: RoleMetadataSync,
    ):
        self._settings = settings
        self._auth_backend = auth_backend
        self._relay_storage = relay_storage
        self._role_sync = role_sync

    def execute(self, command: BootstrapSessionInput) -> BootstrapSessionOutput:
        tracker = BootstrapProgress()
        tracker.advance(
            BootstrapState.INIT,
            12,
            "Connecting you with Rwanda Cancer Relief…",
            "Preparing secure access to your counseling and care resources.",
        )

        # Single-use stash: discarded before any early exit.
        try:
            stashed = self._take_stashed_payload()
        except PayloadStorageError as exc:
            logger.error("bootstrap_session: storage_unreadable error=%s", exc)
            stashed = None
            storage_readable = False
        else:
            storage_readable = True

        if command.error:
            return self._failed(tracker, command.error)

        if not self._settings.backend_configured:
            logger.error("bootstrap_session: backend_not_configured")
            return self._failed(tracker, NOT_CONFIGURED_MESSAGE)

        try:
            return self._run(tracker, command, stashed=stashed, storage_readable=storage_readable)
        except Exception:
            logger.exception("bootstrap_session: unexpected_error")
            return self._failed(tracker, UNEXPECTED_MESSAGE)

    def _run(
        self,
        tracker: BootstrapProgress,
        command: BootstrapSessionInput,
        *,
        stashed: str | None,
        storage_readable: bool,
    ) -> BootstrapSessionOutput:
        tracker.advance(
            BootstrapState.READING_PAYLOAD,
            18,
            "Confirming your sign-in request…",
            "We are securely verifying your credentials. Thank you for your patience.",
        )
        if not storage_readable:
            return self._failed(tracker, STORAGE_UNREADABLE_MESSAGE)

        raw_payload = stashed
        if not raw_payload and command.location_hash:
            raw_payload = command.location_hash.lstrip("#")

        if not raw_payload:
            return self._failed(tracker, PAYLOAD_MISSING_MESSAGE)

        tracker.advance(
            BootstrapState.VALIDATING,
            24,
            "Checking your sign-in details…",
            "Making sure your identity provider approved the request.",
        )
        payload = AuthPayload.from_fragment(raw_payload)
        if payload.error_message:
            logger.warning("bootstrap_session: provider_error payload=%r", payload)
            return self._failed(tracker, payload.error_message)

        if not payload.access_token:
            return self._failed(tracker, TOKEN_MISSING_MESSAGE)

        tracker.advance(
            BootstrapState.ESTABLISHING_SESSION,
            36,
            "Activating your secure session…",
            "Opening the doorway to your Rwanda Cancer Relief support network.",
        )
        try:
            result = self._auth_backend.set_session(
                access_token=payload.access_token,
                refresh_token=payload.refresh_token,
            )
            if not result.is_valid:
                raise SessionExchangeError("Backend returned an empty session.")
        except (AuthBackendError, SessionExchangeError) as exc:
            logger.warning("bootstrap_session: set_session_failed error=%s", exc)
            return self._failed(tracker, SESSION_FAILED_MESSAGE)

        tracker.advance(
            BootstrapState.RESOLVING_DESTINATION,
            58,
            "Personalizing your care experience…",
            "Reviewing your onboarding progress and support preferences.",
        )
        role_sync = self._role_sync.schedule(
            auth_backend=self._auth_backend,
            user=result.user,
            role_hint=command.role,
        )
        identity = build_user_identity(result.user, now=utcnow())
        navigation = resolve_destination(identity, role_hint=command.role, requested_next=command.next_path)

        if navigation.reason == "needs-onboarding":
            tracker.advance(
                BootstrapState.RESOLVING_DESTINATION,
                76,
                "Almost there…",
                "We will guide you through onboarding to tailor your support plan.",
            )
        else:
            tracker.advance(
                BootstrapState.RESOLVING_DESTINATION,
                76,
                "Loading your dashboard…",
                "Gathering the latest updates from your care team.",
            )

        tracker.advance(
            BootstrapState.REDIRECTING,
            100,
            "Redirecting now…",
            "Welcome back to Rwanda Cancer Relief. Your support network is ready.",
        )
        logger.info(
            "bootstrap_session: established user_id=%s role=%s reason=%s path=%s",
            identity.id,
            navigation.role,
            navigation.reason,
            navigation.path,
        )
        return BootstrapSessionOutput(
            succeeded=True,
            state=tracker.state,
            progress=tracker.progress,
            steps=list(tracker.steps),
            navigation=navigation,
            session=result.session,
            error_message=None,
            actions=[],
            replace=True,
            role_sync=role_sync,
        )

    def _take_stashed_payload(self) -> str | None:
        """Read the relayed fragment and delete it; the stash is single-use."""
        try:
            return self._relay_storage.get_item(key=OAUTH_STORAGE_KEY)
        finally:
            try:
                self._relay_storage.remove_item(key=OAUTH_STORAGE_KEY)
            except PayloadStorageError as exc:
                logger.warning("bootstrap_session: storage_clear_failed error=%s", exc)

    def _failed(self, tracker: BootstrapProgress, message: str) -> BootstrapSessionOutput:
        tracker.fail(message)
        return BootstrapSessionOutput(
            succeeded=False,
            state=tracker.state,
            progress=tracker.progress,
            steps=list(tracker.steps),
            navigation=None,
            session=None,
            error_message=message,
            actions=[
                RecoveryAction(label="Return to Sign In", path=self._settings.signin_path),
                RecoveryAction(label="Contact Support", path=self._settings.support_path),
            ],
            replace=True,
            role_sync=None,
        )
