from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs


def _mask(token: str | None) -> str:
    if not token:
        return "''"
    return f"'{token[:6]}...'({len(token)})"


@dataclass(frozen=True, repr=False)
class AuthPayload:
    access_token: str | None
    refresh_token: str
    provider_error: str | None
    provider_error_description: str | None

    @classmethod
    def from_fragment(cls, raw: str) -> AuthPayload:
        """Parse a URL fragment or query string (leading ``#``/``?`` allowed)."""
        text = raw.strip()
        if text[:1] in ("#", "?"):
            text = text[1:]
        params = parse_qs(text, keep_blank_values=True)

        def first(name: str) -> str | None:
            values = params.get(name)
            if not values:
                return None
            value = values[0].strip()
            return value or None

        return cls(
            access_token=first("access_token"),
            refresh_token=first("refresh_token") or "",
            provider_error=first("error"),
            provider_error_description=first("error_description"),
        )

    @property
    def error_message(self) -> str | None:
        return self.provider_error_description or self.provider_error

    def __repr__(self) -> str:
        return (
            "AuthPayload("
            f"access_token={_mask(self.access_token)}, "
            f"refresh_token={_mask(self.refresh_token)}, "
            f"provider_error={self.provider_error!r}, "
            f"provider_error_description={self.provider_error_description!r})"
        )
