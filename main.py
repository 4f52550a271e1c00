"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application(), which builds the identity
     resolver from settings and attaches the optional collaborators
     (rate limiter, PDF renderer) to app.state.
  2. lifespan context manager runs on startup / shutdown.
  3. Routers are registered with their URL prefixes.
  4. Exception handlers turn domain errors into {"detail", "code"} bodies.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from offerdesk.api.routes import allowlist, auth, clients, dashboard, offers, templates
from offerdesk.core.config import settings
from offerdesk.core.errors import DomainError, RateLimited, Unauthenticated
from offerdesk.core.identity import IdentityConfig, IdentityContextResolver
from offerdesk.core.logging import configure_logging, get_logger
from offerdesk.db.session import engine
from offerdesk.services.integrations import PdfRenderer, RateLimiter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup:
      - Configure structured logging

    Shutdown:
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
        default_org_configured=app.state.identity_resolver.default_org_id is not None,
    )
    yield
    logger.info("Shutting down, disposing DB engine")
    await engine.dispose()


def create_application(
    identity_config: Optional[IdentityConfig] = None,
    rate_limiter: Optional[RateLimiter] = None,
    pdf_renderer: Optional[PdfRenderer] = None,
) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant sales offer backend: clients, templates and offers "
            "scoped per organisation, with an admin allowlist."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Collaborators ─────────────────────────────────────────────────────────
    app.state.identity_resolver = IdentityContextResolver(
        identity_config or settings.identity_config()
    )
    app.state.rate_limiter = rate_limiter
    app.state.pdf_renderer = pdf_renderer

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(clients.router)
    app.include_router(templates.router)
    app.include_router(offers.router)
    app.include_router(dashboard.router)
    app.include_router(allowlist.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        headers = {}
        if isinstance(exc, Unauthenticated):
            headers["WWW-Authenticate"] = "Bearer"
        elif isinstance(exc, RateLimited):
            headers["Retry-After"] = str(exc.retry_after)

        if exc.status_code >= 500:
            logger.error("Domain error", path=request.url.path, code=exc.code, error=exc.message)
        else:
            logger.info("Request refused", path=request.url.path, code=exc.code)
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        message = _first_message(errors)
        logger.info("Request validation failed", path=request.url.path, error=message)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": message, "code": "VALIDATION_ERROR", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


def _first_message(errors: list) -> str:
    if not errors:
        return "The submitted data is invalid"
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


app = create_application()
