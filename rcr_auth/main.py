from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from rcr_auth.api.deps import get_app_settings, get_role_sync_executor
from rcr_auth.api.routers.auth_callback import router as auth_callback_router
from rcr_auth.api.schemas.auth_callback import HealthResponse


logging.basicConfig(
    level=get_app_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_app_settings()
    logger.info(
        "main: startup environment=%s backend_configured=%s",
        settings.environment,
        settings.backend_configured,
    )
    yield
    get_role_sync_executor().shutdown(wait=True)
    get_role_sync_executor.cache_clear()


app = FastAPI(title="RCR Auth Callback", lifespan=lifespan)
app.include_router(auth_callback_router)


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")
