from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


NavigationReason = Literal["needs-onboarding", "dashboard", "explicit-next"]


@dataclass(frozen=True)
class NavigationIntent:
    path: str
    reason: NavigationReason
    role: str
