from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import app.models  # noqa: F401
from app.api.router import api_router
from app.core.config import settings
from app.core.security import tokens_match
from app.db.init_db import ensure_seeded
from app.db.session import Base, SessionLocal, engine

logger = logging.getLogger(__name__)

_CSRF_EXEMPT_PATHS = frozenset({"/auth/login", "/auth/logout", "/tasks/scheduled-backup"})


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name)

    origins = settings.cors_origins
    logger.info("CORS allow_origins=%s", origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Content-Disposition",
            "X-Backup-Filename",
            "X-Backup-Id",
            "X-Backup-Sha256",
            "X-SharePoint-Url",
            "X-SharePoint-Id",
        ],
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Error bodies are {"error": ..., "details"?: ...}.
        body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.middleware("http")
    async def _csrf_middleware(request: Request, call_next):
        """
        Production CSRF protection for cookie-auth endpoints.
        - Only enforced in production, for unsafe methods, when the session cookie is present.
        - Login, logout and the token-protected cron endpoint are exempt.
        """
        if settings.environment == "production" and request.method.upper() in {"POST", "PUT", "PATCH", "DELETE"}:
            path = request.url.path.rstrip("/") or "/"
            if path not in _CSRF_EXEMPT_PATHS and request.cookies.get(settings.jwt_cookie_name):
                csrf_cookie = request.cookies.get(settings.csrf_cookie_name)
                csrf_header = request.headers.get("X-CSRF-Token")
                if not tokens_match(csrf_cookie, csrf_header):
                    return JSONResponse(status_code=403, content={"error": "CSRF token missing/invalid"})
        return await call_next(request)

    @app.on_event("startup")
    def _startup() -> None:
        """
        Local dev on SQLite: create tables without Alembic. Always: promote the
        initial admin and seed the default project template.
        """
        if settings.environment == "development" and settings.database_url.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)

        db = SessionLocal()
        try:
            ensure_seeded(db)
        finally:
            db.close()

    app.include_router(api_router)
    return app


app = create_app()
