"""
Client endpoints; agents see the clients they created, managers their organization's.
"""
from typing import List

from fastapi import APIRouter, Depends, Response, status

from salesdesk.api.deps import get_current_actor, get_records, payload_of
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.records import RecordService

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/", response_model=List[schemas.Client])
def list_clients(actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    return records.list_clients(actor)


@router.get("/{client_id}", response_model=schemas.Client)
def get_client(client_id: int, actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    return records.get_client(actor, client_id)


@router.post("/", response_model=schemas.Client, status_code=status.HTTP_201_CREATED)
def create_client(
    body: schemas.ClientCreate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.create_client(actor, payload_of(body))


@router.patch("/{client_id}", response_model=schemas.Client)
def update_client(
    client_id: int,
    body: schemas.ClientUpdate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.update_client(actor, client_id, payload_of(body))


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(client_id: int, actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    records.delete_client(actor, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
