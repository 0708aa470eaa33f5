# app/main.py
import logging
import time
import traceback

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Your configuration and DB
from app.config import Settings
from app.core.db import build_tortoise_config, init_db, close_db
from app.core.bootstrap import ensure_default_admin
from app.core.errors import AppError
from app.core.security import TokenService

from app.api.v1.deps import get_optional_user
from app.api.v1.responses import fail, ok
from app.api.v1.routers import auth, users, uploads
from app.models.user import User
from app.services import AuthService, CredentialStore, UserService
from app.storage import LocalStorage

logger = logging.getLogger("uvicorn.error")

ENDPOINTS = {
    "auth": [
        "POST /auth/register",
        "POST /auth/login",
        "POST /auth/logout",
        "POST /auth/refresh-token",
        "POST /auth/forgot-password",
        "POST /auth/reset-password",
        "GET /auth/verify-email/:token",
        "GET /auth/profile",
        "PUT /auth/profile",
        "PUT /auth/change-password",
    ],
    "users": [
        "GET /users (admin)",
        "GET /users/search",
        "GET /users/:id",
        "PUT /users/:id (admin)",
        "DELETE /users/:id (admin)",
        "GET /users/stats/overview (admin)",
        "PATCH /users/:id/toggle-status (admin)",
        "PATCH /users/:id/role (admin)",
    ],
    "upload": [
        "POST /upload/single",
        "POST /upload/multiple",
        "GET /upload/file/:filename",
        "DELETE /upload/file/:filename",
        "GET /upload/info",
    ],
}


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors into `{field, message}` entries."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc) or "body", "message": message})
    return errors


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("[error] %s %s -> %s", request.method, request.url.path, exc.message)
        return fail(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return fail(400, "Validation errors", _validation_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return fail(exc.status_code, message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        user = getattr(request.state, "user", None)
        logger.error(
            "[error] unhandled %s: url=%s method=%s ip=%s user=%s",
            type(exc).__name__,
            request.url,
            request.method,
            request.client.host if request.client else None,
            user.id if user is not None else "Anonymous",
            exc_info=exc,
        )
        if settings.is_production:
            return fail(500, "Internal Server Error")
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return fail(500, str(exc) or "Internal Server Error", stack=stack)


def create_app(settings: Settings | None = None, db_config: dict | None = None, init_database: bool = True) -> FastAPI:
    """
    Build the FastAPI application and wire its collaborators.

    Args:
        settings: Application settings; read from the environment when omitted
            (raises if JWT_SECRET is missing or shorter than 32 characters)
        db_config: Tortoise configuration; derived from `settings.database_url` when omitted
        init_database: Connect Tortoise on startup (tests manage the connection themselves)
    """
    settings = settings or Settings.from_env()
    started_at = time.monotonic()

    app = FastAPI(title=settings.APP_NAME)

    # Collaborators, built once and shared through app.state
    credential_store = CredentialStore()
    token_service = TokenService(settings.jwt_secret, settings.jwt_expire_minutes)
    user_service = UserService(credential_store)
    app.state.settings = settings
    app.state.credential_store = credential_store
    app.state.token_service = token_service
    app.state.user_service = user_service
    app.state.auth_service = AuthService(credential_store, token_service, user_service)
    app.state.storage = LocalStorage(settings.upload_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app, settings)

    if init_database:
        @app.on_event("startup")
        async def on_startup():
            await init_db(db_config or build_tortoise_config(settings.database_url))
            # Ensure there's a default admin account on first run
            await ensure_default_admin(settings, credential_store)
            logger.info("[startup] %s running in %s mode, API prefix %s", settings.APP_NAME, settings.env, settings.api_prefix)

        @app.on_event("shutdown")
        async def on_shutdown():
            await close_db()

    # REST
    app.include_router(auth.router, prefix=settings.api_prefix)
    app.include_router(users.router, prefix=settings.api_prefix)
    app.include_router(uploads.router, prefix=settings.api_prefix)

    @app.get(settings.api_prefix + "/")
    async def api_index(user: User | None = Depends(get_optional_user)):
        data = {"version": "1.0.0", "endpoints": ENDPOINTS}
        if user is not None:
            data["authenticatedAs"] = {"id": str(user.id), "email": user.email, "role": user.role}
        return ok("User Accounts API", data)

    @app.get("/health")
    async def health():
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "uptime": time.monotonic() - started_at,
        }

    return app


app = create_app()
