from __future__ import annotations

from pydantic import BaseModel, Field


class BootstrapSessionRequest(BaseModel):
    stashed: str | None = Field(default=None, max_length=16384)
    hash: str | None = Field(default=None, max_length=16384)
    role: str | None = Field(default=None, max_length=32)
    next: str | None = Field(default=None, max_length=2048)
    error: str | None = Field(default=None, max_length=1024)
    storage_error: bool = False


class BootstrapStepResponse(BaseModel):
    state: str
    progress: int
    status: str
    detail: str


class RecoveryActionResponse(BaseModel):
    label: str
    path: str


class BootstrapSessionResponse(BaseModel):
    ok: bool
    redirect_to: str | None
    replace: bool
    error: str | None
    progress: int
    steps: list[BootstrapStepResponse]
    actions: list[RecoveryActionResponse]


class HealthResponse(BaseModel):
    status: str
