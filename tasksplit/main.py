"""FastAPI entrypoint for the tasksplit service."""

# ruff: noqa: F401

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from tasksplit.config import AppConfig, load_config
from tasksplit.credentials import FileCredentialStore
from tasksplit.errors import AppError, NotAuthenticated, ValidationError, error_response
from tasksplit.gemini import GeminiModel
from tasksplit.router import api_router
from tasksplit.user_scope import is_auth_exempt, normalize_user_id, session_user

# Import modules to register routes with the shared router.
from tasksplit import activity, api_ai, api_connect, api_todoist, auth

SESSION_COOKIE = "tasksplit_session"
SESSION_MAX_AGE = 30 * 24 * 60 * 60


def create_app(config: AppConfig | None = None) -> FastAPI:
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config.data_path.mkdir(parents=True, exist_ok=True)
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.config = config
    app.state.credential_store = FileCredentialStore(config.data_path)
    app.state.language_model = GeminiModel(config.gemini_api_key, config.gemini_model)
    app.state.todoist_transport = None
    app.state.oauth_transport = None

    @app.middleware("http")
    async def enforce_session_identity(request: Request, call_next):
        if is_auth_exempt(request.url.path):
            return await call_next(request)

        user = session_user(request.session)
        if user is None:
            error = NotAuthenticated()
            return JSONResponse(
                status_code=error.status_code, content=error_response(error.error)
            )
        try:
            request.state.user_id = normalize_user_id(user["id"])
        except AppError as exc:
            return JSONResponse(
                status_code=401, content=error_response(exc.error)
            )
        return await call_next(request)

    # Added last so it wraps the identity middleware and fills request.session.
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie=SESSION_COOKIE,
        max_age=SESSION_MAX_AGE,
        same_site="lax",
        https_only=config.https_only,
    )

    @app.exception_handler(AppError)
    def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code, content=error_response(exc.error)
        )

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(
            "Invalid request.",
            {"errors": [str(item.get("msg")) for item in exc.errors()]},
        )
        return JSONResponse(status_code=400, content=error_response(error.error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(api_router)
    return app


def __getattr__(name: str) -> FastAPI:
    # Lets ``uvicorn tasksplit.main:app`` build the app from the environment on demand.
    if name == "app":
        return create_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
