from __future__ import annotations


class DomainError(Exception):
    """Base class for domain errors."""


class SessionExchangeError(DomainError):
    """Backend rejected the code/token or returned an empty session."""


class PayloadStorageError(DomainError):
    """Relay storage could not be read."""


class AuthBackendError(DomainError):
    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
