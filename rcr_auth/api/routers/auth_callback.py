from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from rcr_auth.api.deps import (
    BootstrapSessionUseCaseFactory,
    access_cookie_name,
    code_verifier_cookie_name,
    get_app_settings,
    get_bootstrap_session_use_case_factory,
    get_handle_oauth_callback_use_case,
    refresh_cookie_name,
)
from rcr_auth.api.schemas.auth_callback import (
    BootstrapSessionRequest,
    BootstrapSessionResponse,
    BootstrapStepResponse,
    RecoveryActionResponse,
)
from rcr_auth.application.dto.auth_callback import OAuthCallbackInput
from rcr_auth.application.dto.bootstrap import BootstrapSessionInput
from rcr_auth.application.use_cases.auth_common import (
    AUTH_ERROR_PATH,
    CALLBACK_LOADING_PATH,
    CALLBACK_PATH,
    CALLBACK_SESSION_PATH,
    OAUTH_STORAGE_KEY,
)
from rcr_auth.application.use_cases.handle_oauth_callback import HandleOAuthCallbackUseCase
from rcr_auth.domain.entities.user import AuthSession
from rcr_auth.infrastructure.storage.relay_storage import InMemoryRelayStorage
from rcr_auth.shared.config import Settings


router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

DEFAULT_ERROR_MESSAGE = "There was an error during authentication. Please try again."
ACCESS_COOKIE_FALLBACK_SECONDS = 60 * 60
REFRESH_COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24 * 30
NO_STORE_HEADERS = {"Cache-Control": "no-store"}


def _request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _set_session_cookies(response: Response, session: AuthSession, settings: Settings) -> None:
    response.set_cookie(
        key=access_cookie_name(settings),
        value=session.access_token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=session.expires_in or ACCESS_COOKIE_FALLBACK_SECONDS,
        path="/",
    )
    if session.refresh_token:
        response.set_cookie(
            key=refresh_cookie_name(settings),
            value=session.refresh_token,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
            max_age=REFRESH_COOKIE_MAX_AGE_SECONDS,
            path="/",
        )


@router.get(CALLBACK_PATH)
def oauth_callback(
    request: Request,
    code: str | None = Query(default=None),
    error: str | None = Query(default=None),
    error_description: str | None = Query(default=None),
    next_path: str | None = Query(default=None, alias="next"),
    role: str | None = Query(default=None),
    x_forwarded_host: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
    use_case: HandleOAuthCallbackUseCase = Depends(get_handle_oauth_callback_use_case),
):
    output = use_case.execute(
        OAuthCallbackInput(
            origin=_request_origin(request),
            code=code,
            error=error,
            error_description=error_description,
            next_path=next_path,
            role=role,
            forwarded_host=x_forwarded_host,
        )
    )

    if output.relay_page is not None:
        return templates.TemplateResponse(
            request,
            "relay.html",
            {"relay": output.relay_page},
            headers=NO_STORE_HEADERS,
        )

    response = RedirectResponse(output.redirect_url, status_code=307)
    if output.session is not None:
        _set_session_cookies(response, output.session, settings)
    if output.code_exchange_attempted:
        response.delete_cookie(key=code_verifier_cookie_name(settings), path="/")
    return response


@router.get(CALLBACK_LOADING_PATH)
def oauth_callback_loading(
    request: Request,
    settings: Settings = Depends(get_app_settings),
):
    return templates.TemplateResponse(
        request,
        "loading.html",
        {
            "storage_key": OAUTH_STORAGE_KEY,
            "session_endpoint": CALLBACK_SESSION_PATH,
            "signin_path": settings.signin_path,
            "support_path": settings.support_path,
        },
        headers=NO_STORE_HEADERS,
    )


@router.post(CALLBACK_SESSION_PATH, response_model=BootstrapSessionResponse)
def bootstrap_session(
    req: BootstrapSessionRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    use_case_factory: BootstrapSessionUseCaseFactory = Depends(get_bootstrap_session_use_case_factory),
):
    stash = {OAUTH_STORAGE_KEY: req.stashed} if req.stashed else {}
    use_case = use_case_factory(InMemoryRelayStorage(stash, readable=not req.storage_error))
    output = use_case.execute(
        BootstrapSessionInput(
            location_hash=req.hash,
            role=req.role,
            next_path=req.next,
            error=req.error,
        )
    )

    response.headers["Cache-Control"] = "no-store"
    if output.session is not None:
        _set_session_cookies(response, output.session, settings)

    return BootstrapSessionResponse(
        ok=output.succeeded,
        redirect_to=output.navigation.path if output.navigation is not None else None,
        replace=output.replace,
        error=output.error_message,
        progress=output.progress,
        steps=[
            BootstrapStepResponse(
                state=step.state.value,
                progress=step.progress,
                status=step.status,
                detail=step.detail,
            )
            for step in output.steps
        ],
        actions=[RecoveryActionResponse(label=action.label, path=action.path) for action in output.actions],
    )


@router.get(AUTH_ERROR_PATH)
def auth_code_error(
    request: Request,
    error: str | None = Query(default=None),
    settings: Settings = Depends(get_app_settings),
):
    return templates.TemplateResponse(
        request,
        "auth_code_error.html",
        {
            "error": error,
            "message": error or DEFAULT_ERROR_MESSAGE,
            "signin_path": settings.signin_path,
            "support_path": settings.support_path,
        },
        headers=NO_STORE_HEADERS,
    )
