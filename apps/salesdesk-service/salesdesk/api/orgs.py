"""
Organizations API endpoints.

Superadmins manage every organization; other roles read their own.
"""
from typing import List

from fastapi import APIRouter, Depends, Response, status

from salesdesk.api.deps import get_current_actor, get_records, payload_of
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.records import RecordService

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("/", response_model=List[schemas.Organization])
def list_organizations(actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    return records.list_organizations(actor)


@router.get("/{organization_id}", response_model=schemas.Organization)
def get_organization(
    organization_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.get_organization(actor, organization_id)


@router.post("/", response_model=schemas.Organization, status_code=status.HTTP_201_CREATED)
def create_organization(
    body: schemas.OrganizationCreate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.create_organization(actor, payload_of(body))


@router.patch("/{organization_id}", response_model=schemas.Organization)
def update_organization(
    organization_id: int,
    body: schemas.OrganizationUpdate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.update_organization(actor, organization_id, payload_of(body))


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organization(
    organization_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    records.delete_organization(actor, organization_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
