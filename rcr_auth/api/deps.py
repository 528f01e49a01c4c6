from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache, partial
from typing import Callable

from fastapi import Depends, Request

from rcr_auth.application.ports.relay_storage_port import RelayStoragePort
from rcr_auth.application.use_cases.bootstrap_session import BootstrapSessionUseCase
from rcr_auth.application.use_cases.handle_oauth_callback import HandleOAuthCallbackUseCase
from rcr_auth.application.use_cases.role_sync import RoleMetadataSync
from rcr_auth.infrastructure.clients.supabase_auth_client import (
    StoredAuthCookies,
    SupabaseAuthClient,
    SupabaseAuthClientSettings,
)
from rcr_auth.shared.config import Settings, get_settings


BootstrapSessionUseCaseFactory = Callable[[RelayStoragePort], BootstrapSessionUseCase]


def access_cookie_name(settings: Settings) -> str:
    return f"{settings.auth_cookie_name}-access"


def refresh_cookie_name(settings: Settings) -> str:
    return f"{settings.auth_cookie_name}-refresh"


def code_verifier_cookie_name(settings: Settings) -> str:
    return f"{settings.auth_cookie_name}-code-verifier"


@lru_cache(maxsize=1)
def _get_cached_settings() -> Settings:
    return get_settings()


def get_app_settings() -> Settings:
    return _get_cached_settings()


@lru_cache(maxsize=1)
def get_role_sync_executor() -> ThreadPoolExecutor:
    settings = _get_cached_settings()
    return ThreadPoolExecutor(
        max_workers=max(1, settings.role_sync_max_workers),
        thread_name_prefix="role-sync",
    )


def get_role_metadata_sync() -> RoleMetadataSync:
    return RoleMetadataSync(executor=get_role_sync_executor())


def get_auth_backend(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> SupabaseAuthClient:
    cookies = StoredAuthCookies(
        access_token=request.cookies.get(access_cookie_name(settings)),
        refresh_token=request.cookies.get(refresh_cookie_name(settings)),
        code_verifier=request.cookies.get(code_verifier_cookie_name(settings)),
    )
    return SupabaseAuthClient(
        SupabaseAuthClientSettings(
            base_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            timeout_seconds=settings.auth_backend_timeout_seconds,
        ),
        cookies=cookies,
    )


def get_handle_oauth_callback_use_case(
    settings: Settings = Depends(get_app_settings),
    auth_backend: SupabaseAuthClient = Depends(get_auth_backend),
    role_sync: RoleMetadataSync = Depends(get_role_metadata_sync),
) -> HandleOAuthCallbackUseCase:
    return HandleOAuthCallbackUseCase(
        settings=settings,
        auth_backend=auth_backend,
        role_sync=role_sync,
    )


def get_bootstrap_session_use_case_factory(
    settings: Settings = Depends(get_app_settings),
    auth_backend: SupabaseAuthClient = Depends(get_auth_backend),
    role_sync: RoleMetadataSync = Depends(get_role_metadata_sync),
) -> BootstrapSessionUseCaseFactory:
    # Relay storage comes from the request body, so the router binds it.
    return partial(_build_bootstrap_session_use_case, settings, auth_backend, role_sync)


def _build_bootstrap_session_use_case(
    settings: Settings,
    auth_backend: SupabaseAuthClient,
    role_sync: RoleMetadataSync,
    relay_storage: RelayStoragePort,
) -> BootstrapSessionUseCase:
    return BootstrapSessionUseCase(
        settings=settings,
        auth_backend=auth_backend,
        relay_storage=relay_storage,
        role_sync=role_sync,
    )
