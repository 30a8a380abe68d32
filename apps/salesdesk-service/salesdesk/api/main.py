"""
FastAPI app assembly: lifespan, error translation and router wiring.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from salesdesk.api.auth import router as auth_router
from salesdesk.api.clients import router as clients_router
from salesdesk.api.dashboard import router as dashboard_router
from salesdesk.api.forms import submissions_router, templates_router
from salesdesk.api.orgs import router as orgs_router
from salesdesk.api.proposals import router as proposals_router
from salesdesk.api.reference import agreements_router, banks_router, products_router
from salesdesk.api.users import router as users_router
from salesdesk.db.adapters import build_repository
from salesdesk.db.bootstrap import bootstrap
from salesdesk.db.repository import Repository
from salesdesk.errors import (
    AlreadyProcessed,
    BackendUnavailable,
    Conflict,
    Forbidden,
    ForbiddenReason,
    NotFound,
    RepositoryError,
    ValidationFailed,
)
from salesdesk.services.auth_service import CredentialManager
from salesdesk.utils.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> int:
    """Apply the configured level to the root handler and the service loggers."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level)
    logging.getLogger("salesdesk").setLevel(level)
    return level


origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
]

_STATUS_BY_ERROR = [
    (ValidationFailed, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (Conflict, status.HTTP_409_CONFLICT),
    (AlreadyProcessed, status.HTTP_409_CONFLICT),
    (BackendUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: RepositoryError) -> int:
    if isinstance(exc, Forbidden) and exc.reason == ForbiddenReason.UNAUTHENTICATED:
        return status.HTTP_401_UNAUTHORIZED
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def repository_error_handler(request: Request, exc: RepositoryError):
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse({"detail": exc.message, **exc.to_dict()}, status_code=code, headers=headers)


def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """Build the application.

    The repository is built from configuration at startup unless one is
    passed in; only a repository built here is closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        configure_logging(cfg.log_level)
        repo = repository if repository is not None else build_repository(cfg)
        report = bootstrap(repo, cfg)
        if report.changed:
            logger.info("bootstrap seeded: %s", report.seeded)
        app.state.settings = cfg
        app.state.repository = repo
        app.state.credentials = CredentialManager(repo, cfg)
        logger.info("app_startup: backend=%s log_level=%s", cfg.storage_backend, cfg.log_level)
        try:
            yield
        finally:
            if repository is None:
                repo.close()

    app = FastAPI(
        title="Salesdesk Service",
        description="Multi-tenant sales desk API: clients, proposals, form intake and reporting.",
        version="1.0.0",
        lifespan=lifespan,
    )
    # Avoid implicit trailing-slash redirects for predictable URLs
    app.router.redirect_slashes = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RepositoryError, repository_error_handler)

    app.include_router(auth_router)
    app.include_router(orgs_router)
    app.include_router(users_router)
    app.include_router(clients_router)
    app.include_router(proposals_router)
    app.include_router(products_router)
    app.include_router(agreements_router)
    app.include_router(banks_router)
    app.include_router(templates_router)
    app.include_router(submissions_router)
    app.include_router(dashboard_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": "salesdesk-service"}

    return app
