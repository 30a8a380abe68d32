"""
User account endpoints, including password reset and change.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from salesdesk.api.deps import get_credentials, get_current_actor, get_records, payload_of
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.auth_service import CredentialManager
from salesdesk.services.records import RecordService

router = APIRouter(prefix="/users", tags=["users"])


class PasswordResetResult(BaseModel):
    message: str
    # only set when the service generated the new password itself
    password: Optional[str] = None


@router.get("/", response_model=List[schemas.User])
def list_users(actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    return records.list_users(actor)


@router.get("/{user_id}", response_model=schemas.User)
def get_user(user_id: str, actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    return records.get_user(actor, user_id)


@router.post("/", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_user(
    body: schemas.UserRegistration,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.create_user(actor, payload_of(body))


@router.patch("/{user_id}", response_model=schemas.User)
def update_user(
    user_id: str,
    body: schemas.UserUpdate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.update_user(actor, user_id, payload_of(body))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    records.delete_user(actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/reset-password", response_model=PasswordResetResult)
def reset_password(
    user_id: str,
    actor: Actor = Depends(get_current_actor),
    credentials: CredentialManager = Depends(get_credentials),
):
    password = credentials.reset_password(actor, user_id)
    if password is None:
        return PasswordResetResult(message="Password reset email sent")
    return PasswordResetResult(message="Password reset", password=password)


@router.put("/{user_id}/password", response_model=schemas.User)
def change_password(
    user_id: str,
    body: schemas.PasswordChange,
    actor: Actor = Depends(get_current_actor),
    credentials: CredentialManager = Depends(get_credentials),
):
    return credentials.change_password(actor, user_id, body.new_password, body.current_password)
