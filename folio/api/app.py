"""FastAPI server for Folio"""

from __future__ import annotations

import os
import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from folio.api.dependencies import Services
from folio.api.middleware.rate_limit import RateLimitMiddleware
from folio.api.routes.admin import router as admin_router
from folio.api.routes.health import router as health_router
from folio.api.routes.public import router as public_router
from folio.config import APP_VERSION, RATE_LIMIT_RPM
from folio.content.store import ContentStore
from folio.infrastructure.database import init_database, validate_schema
from folio.infrastructure.settings import Settings
from folio.llm.responder import GeminiResponder, Responder
from folio.notifications.mailer import Mailer, SmtpMailer
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter, log_event
from folio.requests.processing import RequestProcessor
from folio.security.moderation import ModerationService
from folio.security.tokens import TokenService
from folio.tasks.queue import TaskQueue
from folio.utils.redaction import redact

logger = get_logger(__name__)

DEFAULT_SECRETS = {
    "jwt_secret": Settings.jwt_secret,
    "admin_secret": Settings.admin_secret,
    "trap_secret": Settings.trap_secret,
}


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking internal validation logic.

    Side Effects:
        - Logs detailed validation errors for debugging (with PII redaction)
        - Increments validation error counter for monitoring
    """
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            # Only expose field names, not validation logic
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def _allowed_origins(settings: Settings) -> list[str]:
    origins = [settings.base_url, *settings.allowed_origins]

    # Allow localhost in development only
    if settings.is_development():
        origins.extend(
            [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://localhost:8000",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:8000",
            ]
        )
    return origins


def _check_secrets(settings: Settings) -> None:
    """Refuse to run production on the placeholder secrets."""
    weak = [name for name, default in DEFAULT_SECRETS.items() if getattr(settings, name) == default]
    if not weak:
        return
    if settings.is_production():
        raise RuntimeError(
            f"Security misconfiguration: {', '.join(weak)} not set in production. "
            "Refusing to start with placeholder signing secrets."
        )
    logger.warning("Using placeholder secrets (%s); acceptable only in development", ", ".join(weak))


def _init_storage(settings: Settings) -> None:
    try:
        logger.info("Initializing database schema...")
        init_database(settings.db_path)
        validate_schema()
        logger.info("Database initialization complete")
    except (sqlite3.OperationalError, ValueError) as e:
        logger.critical("Database schema error: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e


def create_app(
    settings: Settings | None = None,
    *,
    task_queue: TaskQueue | None = None,
    mailer: Mailer | None = None,
    responder: Responder | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to ``Settings.from_env()`` after loading ``.env``
        task_queue: Background queue (tests pass a recording fake)
        mailer: Outbound email (defaults to SMTP)
        responder: AI reply drafting (defaults to Gemini)
    """
    if settings is None:
        load_dotenv()
        settings = Settings.from_env()

    _check_secrets(settings)
    _init_storage(settings)

    tokens = TokenService(settings)
    store = ContentStore(settings.content_path, settings.backup_dir)
    queue = task_queue or TaskQueue()
    mailer = mailer or SmtpMailer(settings)
    responder = responder or GeminiResponder(settings)

    services = Services(
        settings=settings,
        tokens=tokens,
        store=store,
        queue=queue,
        mailer=mailer,
        processor=RequestProcessor(
            settings, store=store, responder=responder, mailer=mailer, tokens=tokens
        ),
        moderation=ModerationService(settings, tokens=tokens, queue=queue, mailer=mailer),
    )

    app = FastAPI(title="Folio API", version=APP_VERSION)
    app.state.services = services
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Access-Token", "X-Admin-Token", "X-Admin-Password"],
    )

    # Public API only; admin routes are token-guarded
    app.add_middleware(RateLimitMiddleware, settings=settings, requests_per_minute=RATE_LIMIT_RPM)

    app.include_router(health_router)
    app.include_router(public_router)
    app.include_router(admin_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "Folio API",
            "version": APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "portfolio": "/api/portfolio",
                "request": "/api/request",
                "admin_users": "/admin/users",
            },
        }

    log_event("api.startup", service="folio", version=APP_VERSION, env=settings.env)
    return app


def main() -> None:
    import uvicorn

    load_dotenv()
    uvicorn.run(
        "folio.api.app:create_app",
        factory=True,
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
