"""
Proposal endpoints with status, client, product and value-range filters.
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from salesdesk.api.deps import get_current_actor, get_records, payload_of
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.records import RecordService

router = APIRouter(prefix="/proposals", tags=["proposals"])


@router.get("/", response_model=List[schemas.Proposal])
def list_proposals(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    client_id: Optional[int] = None,
    product_id: Optional[int] = None,
    min_value: Optional[Decimal] = None,
    max_value: Optional[Decimal] = None,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.list_proposals(
        actor,
        status=status_filter,
        client_id=client_id,
        product_id=product_id,
        min_value=min_value,
        max_value=max_value,
    )


@router.get("/with-details", response_model=List[schemas.ProposalWithDetails])
def list_proposals_with_details(
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.list_proposals_with_details(actor)


@router.get("/{proposal_id}", response_model=schemas.Proposal)
def get_proposal(
    proposal_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.get_proposal(actor, proposal_id)


@router.post("/", response_model=schemas.Proposal, status_code=status.HTTP_201_CREATED)
def create_proposal(
    body: schemas.ProposalCreate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.create_proposal(actor, payload_of(body))


@router.patch("/{proposal_id}", response_model=schemas.Proposal)
def update_proposal(
    proposal_id: int,
    body: schemas.ProposalUpdate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.update_proposal(actor, proposal_id, payload_of(body))


@router.delete("/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_proposal(
    proposal_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    records.delete_proposal(actor, proposal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
