from __future__ import annotations

from rcr_auth.application.ports.relay_storage_port import RelayStoragePort
from rcr_auth.domain.exceptions import PayloadStorageError


class InMemoryRelayStorage(RelayStoragePort):
    """Relay stash handed over by the loading page for one bootstrap run."""

    def __init__(self, items: dict[str, str] | None = None, *, readable: bool = True):
        self._items = dict(items or {})
        self._readable = readable

    def get_item(self, *, key: str) -> str | None:
        if not self._readable:
            raise PayloadStorageError("Relay storage is not readable.")
        return self._items.get(key)

    def remove_item(self, *, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items
