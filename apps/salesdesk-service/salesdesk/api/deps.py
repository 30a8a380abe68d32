"""
API dependency helpers.

Resolves the acting user from the bearer token and hands out the services
bound to the repository built at startup.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from salesdesk.api.permissions import Actor
from salesdesk.db.repository import Repository
from salesdesk.services.auth_service import CredentialManager
from salesdesk.services.dashboard import DashboardService
from salesdesk.services.records import RecordService
from salesdesk.services.submission_processor import SubmissionProcessor

logger = logging.getLogger(__name__)


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_credentials(request: Request) -> CredentialManager:
    return request.app.state.credentials


def get_records(repo: Repository = Depends(get_repository)) -> RecordService:
    return RecordService(repo)


def get_processor(repo: Repository = Depends(get_repository)) -> SubmissionProcessor:
    return SubmissionProcessor(repo)


def get_dashboard(repo: Repository = Depends(get_repository)) -> DashboardService:
    return DashboardService(repo)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_optional_actor(
    authorization: Optional[str] = Header(default=None),
    credentials: CredentialManager = Depends(get_credentials),
) -> Optional[Actor]:
    """Actor for a valid token, None without an Authorization header.

    A header carrying an invalid or expired token is rejected rather than
    treated as anonymous.
    """
    if authorization is None:
        return None
    actor = credentials.resolve_actor(_bearer_token(authorization))
    if actor is None:
        raise _unauthorized()
    return actor


def get_current_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise _unauthorized()
    return actor


def payload_of(model) -> dict:
    """Fields the client actually sent, as JSON-compatible values."""
    return model.model_dump(mode="json", exclude_unset=True)
