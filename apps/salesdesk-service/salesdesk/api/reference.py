"""
Reference data endpoints: products, agreements (convenios) and banks.

All three share one shape, so the routers are built by one factory.
"""
from typing import List, Type

from fastapi import APIRouter, Depends, Response, status

from salesdesk.api.deps import get_current_actor, get_records, payload_of
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.records import RecordService
from salesdesk.utils.scopes import AGREEMENT, BANK, PRODUCT


def reference_router(prefix: str, kind: str, model: Type[schemas.ReferenceRecord]) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=["reference"])

    @router.get("/", response_model=List[model])
    def list_items(actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
        return records.list_reference(actor, kind)

    @router.get("/{item_id}", response_model=model)
    def get_item(item_id: int, actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
        return records.get_reference(actor, kind, item_id)

    @router.post("/", response_model=model, status_code=status.HTTP_201_CREATED)
    def create_item(
        body: schemas.ReferenceCreate,
        actor: Actor = Depends(get_current_actor),
        records: RecordService = Depends(get_records),
    ):
        return records.create_reference(actor, kind, payload_of(body))

    @router.patch("/{item_id}", response_model=model)
    def update_item(
        item_id: int,
        body: schemas.ReferenceUpdate,
        actor: Actor = Depends(get_current_actor),
        records: RecordService = Depends(get_records),
    ):
        return records.update_reference(actor, kind, item_id, payload_of(body))

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_item(item_id: int, actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
        records.delete_reference(actor, kind, item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


products_router = reference_router("/products", PRODUCT, schemas.Product)
agreements_router = reference_router("/agreements", AGREEMENT, schemas.Agreement)
banks_router = reference_router("/banks", BANK, schemas.Bank)
