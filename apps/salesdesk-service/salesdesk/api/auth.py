"""
Authentication endpoints: password login and the current account.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from salesdesk.api.deps import get_credentials, get_current_actor, get_repository
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.db.repository import Repository
from salesdesk.services.auth_service import CredentialManager

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: schemas.User


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, credentials: CredentialManager = Depends(get_credentials)):
    token, user = credentials.login(body.email, body.password)
    return LoginResponse(access_token=token, expires_in=int(credentials.ttl.total_seconds()), user=user)


@router.get("/me", response_model=schemas.User)
def me(actor: Actor = Depends(get_current_actor), repo: Repository = Depends(get_repository)):
    return repo.get_user(actor.id)
