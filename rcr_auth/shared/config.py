from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


PRODUCTION_ENVIRONMENTS = frozenset({"production", "prod"})


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    environment: str
    platform_external_url: str
    auth_cookie_name: str
    auth_backend_timeout_seconds: float
    role_sync_max_workers: int
    signin_path: str
    support_path: str
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_ENVIRONMENTS

    @property
    def backend_configured(self) -> bool:
        return bool(self.supabase_url) and bool(self.supabase_anon_key)


def get_settings() -> Settings:
    return Settings(
        supabase_url=_env("SUPABASE_URL", "").rstrip("/"),
        supabase_anon_key=_env("SUPABASE_ANON_KEY", ""),
        environment=_env("APP_ENV", "development"),
        platform_external_url=_env("PLATFORM_EXTERNAL_URL") or _env("VERCEL_URL", ""),
        auth_cookie_name=_env("AUTH_COOKIE_NAME", "sb-auth-token"),
        auth_backend_timeout_seconds=float(_env("AUTH_BACKEND_TIMEOUT_SECONDS", "10")),
        role_sync_max_workers=int(_env("ROLE_SYNC_MAX_WORKERS", "4")),
        signin_path=_env("SIGNIN_PATH", "/signin"),
        support_path=_env("SUPPORT_PATH", "/contact"),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )
