"""
FastAPI Application - Theme stylesheet compiler
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from themestyles.auth import auth_backend, fastapi_users
from themestyles.config import settings
from themestyles.database import Base, SessionLocal, engine
from themestyles.dependencies import get_nonce_manager, get_publisher
from themestyles.models import option, user  # noqa: F401 - needed for metadata
from themestyles.observability.logging import configure_logging
from themestyles.routers.admin import router as admin_router
from themestyles.routers.ui import router as ui_router
from themestyles.security import limiter
from themestyles.services.options import OptionStore
from themestyles.services.publisher import StylesheetPublisher
from themestyles.staticfiles import CachedStaticFiles

configure_logging(settings.log_level.upper(), theme=settings.theme_root)
logger = logging.getLogger(__name__)


# ==========================================
# Startup
# ==========================================
def init_database() -> None:
    Base.metadata.create_all(bind=engine)


async def create_admin_user_on_startup() -> None:
    """Create the configured superuser if it does not exist yet."""
    from fastapi_users.exceptions import UserAlreadyExists, UserNotExists
    from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase

    from themestyles.auth import UserManager
    from themestyles.database import AsyncSessionLocal
    from themestyles.models.user import User
    from themestyles.schemas.user import UserCreate

    async with AsyncSessionLocal() as session:
        user_manager = UserManager(SQLAlchemyUserDatabase(session, User))
        try:
            await user_manager.get_by_email(settings.admin_username)
            logger.info("Admin user %s exists", settings.admin_username)
            return
        except UserNotExists:
            pass

        try:
            created = await user_manager.create(
                UserCreate(
                    email=settings.admin_username,
                    password=settings.admin_password,
                    is_superuser=True,
                    is_verified=True,
                )
            )
            logger.info("Created admin user %s", created.email)
        except UserAlreadyExists:
            logger.info("Admin user %s already created", settings.admin_username)
        except ValueError as exc:
            logger.warning("Could not create admin user: %s", exc)


def activate_theme() -> bool:
    """Compile once at startup, the way switching to the theme would."""
    with SessionLocal() as db:
        publisher = StylesheetPublisher.from_settings(
            settings, OptionStore(db), get_nonce_manager()
        )
        publisher.validate()
        compiled = publisher.on_activate()
        if not compiled:
            logger.warning(
                "Startup compile skipped: %s", publisher.state.error_message
            )
        return compiled


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")
    init_database()
    await create_admin_user_on_startup()
    if settings.compile_on_startup:
        activate_theme()
    yield
    logger.info("Shutting down application")


# ==========================================
# Exception handlers
# ==========================================
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    accepts_html = "text/html" in request.headers.get("accept", "").lower()
    if accepts_html:
        return HTMLResponse(
            "<h2>Too Many Requests</h2><p>Please retry shortly.</p>",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )
    return JSONResponse(
        {"detail": "Rate limit exceeded. Please retry shortly."},
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    accepts_html = "text/html" in request.headers.get("accept", "").lower()
    if exc.status_code in (401, 403) and accepts_html:
        return HTMLResponse(
            f"<h2>{exc.status_code}</h2>"
            "<p>Sorry, you are not allowed to do that.</p>",
            status_code=exc.status_code,
        )
    return JSONResponse(
        {"detail": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


# ==========================================
# FastAPI Application
# ==========================================
app = FastAPI(
    title="Theme Styles",
    description="Compiles the theme's SCSS tree and publishes the stylesheet",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

# Compiled stylesheet; the ?ver= token busts the long-lived cache
app.mount(
    f"{settings.theme_url.rstrip('/')}/{settings.output_subdir}",
    CachedStaticFiles(directory=settings.output_dir, check_dir=False),
    name="theme-css",
)


@app.get("/healthz", tags=["system"], summary="Health check", response_model=dict)
def health_check(publisher: StylesheetPublisher = Depends(get_publisher)) -> dict:
    if settings.is_production:
        return {"status": "healthy"}
    return {
        "status": "healthy",
        "stylesheet": publisher.status.value,
        "version": app.version,
    }


# ==========================================
# Routers
# ==========================================
app.include_router(ui_router)
app.include_router(admin_router)
app.include_router(
    fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
)
