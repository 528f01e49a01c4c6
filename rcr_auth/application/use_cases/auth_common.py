from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import quote

from rcr_auth.shared.config import Settings


OAUTH_STORAGE_KEY = "rcr.oauth.payload"
CALLBACK_PATH = "/auth/callback"
CALLBACK_LOADING_PATH = "/auth/callback/loading"
CALLBACK_SESSION_PATH = "/auth/callback/session"
AUTH_ERROR_PATH = "/auth/auth-code-error"
RELAY_TIMEOUT_MS = 10_000

EXCHANGE_FAILED_MESSAGE = "Failed to complete authentication. Please try again."
SESSION_NOT_CREATED_MESSAGE = "Authentication session not created. Please try again."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred during authentication."
PRODUCTION_CONFIG_ERROR_MESSAGE = "Sign-in is temporarily unavailable. Please contact support."
DEVELOPMENT_CONFIG_ERROR_MESSAGE = (
    "OAuth is not configured. Please set SUPABASE_URL and SUPABASE_ANON_KEY "
    "in your environment variables."
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def short_code(code: str) -> str:
    return f"{code[:6]}..."


def configuration_error_message(settings: Settings) -> str:
    if settings.is_production:
        return PRODUCTION_CONFIG_ERROR_MESSAGE
    return DEVELOPMENT_CONFIG_ERROR_MESSAGE


def build_error_url(origin: str, message: str) -> str:
    return f"{origin.rstrip('/')}{AUTH_ERROR_PATH}?error={quote(message, safe='')}"


def resolve_base_url(*, settings: Settings, origin: str, forwarded_host: str | None) -> str:
    """Public base URL for the final redirect.

    Behind the production load balancer the request origin is the internal
    one, so the forwarded host wins, then the platform URL.
    """
    origin = origin.rstrip("/")
    if not settings.is_production:
        return origin
    if forwarded_host:
        return f"https://{forwarded_host.split(',')[0].strip()}"
    if settings.platform_external_url:
        external = settings.platform_external_url.rstrip("/")
        if external.startswith(("http://", "https://")):
            return external
        return f"https://{external}"
    return origin
