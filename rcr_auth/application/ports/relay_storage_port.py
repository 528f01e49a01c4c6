from __future__ import annotations

from typing import Protocol


class RelayStoragePort(Protocol):
    def get_item(self, *, key: str) -> str | None:
        ...

    def remove_item(self, *, key: str) -> None:
        ...
