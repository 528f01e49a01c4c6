from __future__ import annotations

import logging

from rcr_auth.application.dto.auth_callback import (
    OAuthCallbackInput,
    OAuthCallbackOutput,
    RelayPageContext,
)
from rcr_auth.application.ports.auth_backend_port import AuthBackendPort
from rcr_auth.domain.entities.user import AuthSession, AuthUser
from rcr_auth.domain.exceptions import AuthBackendError
from rcr_auth.domain.services.destination import dashboard_route, resolve_destination, resolve_role
from rcr_auth.domain.services.identity import build_user_identity
from rcr_auth.shared.config import Settings

from .auth_common import (
    AUTH_ERROR_PATH,
    CALLBACK_LOADING_PATH,
    CALLBACK_SESSION_PATH,
    EXCHANGE_FAILED_MESSAGE,
    OAUTH_STORAGE_KEY,
    RELAY_TIMEOUT_MS,
    SESSION_NOT_CREATED_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    build_error_url,
    configuration_error_message,
    resolve_base_url,
    short_code,
    utcnow,
)
from .role_sync import RoleMetadataSync


logger = logging.getLogger(__name__)


class HandleOAuthCallbackUseCase:
    def __init__(
        self,
        *,
        settings: Settings,
        auth_backend: AuthBackendPort,
        role_sync: RoleMetadataSync,
    ):
        self._settings = settings
        self._auth_backend = auth_backend
        self._role_sync = role_sync

    def execute(self, command: OAuthCallbackInput) -> OAuthCallbackOutput:
        if command.error:
            logger.warning(
                "oauth_callback: provider_error error=%s description=%s",
                command.error,
                command.error_description,
            )
            return self._fail(command, command.error_description or command.error)

        if not self._settings.backend_configured:
            logger.error(
                "oauth_callback: backend_not_configured has_url=%s has_key=%s",
                bool(self._settings.supabase_url),
                bool(self._settings.supabase_anon_key),
            )
            return self._fail(command, configuration_error_message(self._settings))

        try:
            return self._authenticate(command)
        except Exception:
            logger.exception("oauth_callback: unexpected_error")
            return self._fail(command, UNEXPECTED_ERROR_MESSAGE)

    def _authenticate(self, command: OAuthCallbackInput) -> OAuthCallbackOutput:
        existing = self._existing_session()
        if existing is not None:
            logger.info("oauth_callback: existing_session user_id=%s", existing.user.id)
            return self._complete(command, session=existing, user=existing.user, exchanged=False)

        if not command.code:
            logger.info("oauth_callback: no_code serving_relay_page")
            return OAuthCallbackOutput(
                redirect_url=None,
                relay_page=self._relay_context(command),
                session=None,
                navigation=None,
                error_message=None,
                role_sync=None,
                code_exchange_attempted=False,
            )

        try:
            result = self._auth_backend.exchange_code_for_session(code=command.code)
        except AuthBackendError as exc:
            logger.warning(
                "oauth_callback: exchange_failed status=%s code=%s error=%s",
                exc.status,
                short_code(command.code),
                exc.message,
            )
            return self._fail(command, exc.message or EXCHANGE_FAILED_MESSAGE, exchanged=True)

        if not result.is_valid:
            logger.error(
                "oauth_callback: exchange_without_session has_session=%s has_user=%s",
                result.session is not None,
                result.user is not None,
            )
            return self._fail(command, SESSION_NOT_CREATED_MESSAGE, exchanged=True)

        return self._complete(command, session=result.session, user=result.user, exchanged=True)

    def _existing_session(self) -> AuthSession | None:
        try:
            return self._auth_backend.get_session()
        except AuthBackendError as exc:
            logger.warning("oauth_callback: get_session_failed status=%s error=%s", exc.status, exc.message)
            return None

    def _complete(
        self,
        command: OAuthCallbackInput,
        *,
        session: AuthSession,
        user: AuthUser,
        exchanged: bool,
    ) -> OAuthCallbackOutput:
        role_sync = self._role_sync.schedule(
            auth_backend=self._auth_backend,
            user=user,
            role_hint=command.role,
        )
        identity = build_user_identity(user, now=utcnow())
        navigation = resolve_destination(identity, role_hint=command.role, requested_next=command.next_path)
        base_url = resolve_base_url(
            settings=self._settings,
            origin=command.origin,
            forwarded_host=command.forwarded_host,
        )
        logger.info(
            "oauth_callback: authenticated user_id=%s role=%s reason=%s path=%s",
            identity.id,
            navigation.role,
            navigation.reason,
            navigation.path,
        )
        return OAuthCallbackOutput(
            redirect_url=f"{base_url}{navigation.path}",
            relay_page=None,
            session=session,
            navigation=navigation,
            error_message=None,
            role_sync=role_sync,
            code_exchange_attempted=exchanged,
        )

    def _relay_context(self, command: OAuthCallbackInput) -> RelayPageContext:
        return RelayPageContext(
            storage_key=OAUTH_STORAGE_KEY,
            loading_path=CALLBACK_LOADING_PATH,
            error_path=AUTH_ERROR_PATH,
            session_endpoint=CALLBACK_SESSION_PATH,
            timeout_ms=RELAY_TIMEOUT_MS,
            fallback_path=dashboard_route(resolve_role(None, command.role)),
            signin_path=self._settings.signin_path,
        )

    def _fail(
        self,
        command: OAuthCallbackInput,
        message: str,
        *,
        exchanged: bool = False,
    ) -> OAuthCallbackOutput:
        return OAuthCallbackOutput(
            redirect_url=build_error_url(command.origin, message),
            relay_page=None,
            session=None,
            navigation=None,
            error_message=message,
            role_sync=None,
            code_exchange_attempted=exchanged,
        )
