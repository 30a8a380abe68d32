"""
Form template and submission endpoints.

Reading an active template and posting a submission are public; everything
else requires a session.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from salesdesk.api.deps import get_current_actor, get_optional_actor, get_processor, get_records, payload_of
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.records import RecordService
from salesdesk.services.submission_processor import SubmissionProcessor

templates_router = APIRouter(prefix="/form-templates", tags=["forms"])
submissions_router = APIRouter(prefix="/form-submissions", tags=["forms"])


@templates_router.get("/", response_model=List[schemas.FormTemplate])
def list_form_templates(actor: Actor = Depends(get_current_actor), records: RecordService = Depends(get_records)):
    return records.list_form_templates(actor)


@templates_router.get("/{template_id}", response_model=schemas.FormTemplate)
def get_form_template(
    template_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    records: RecordService = Depends(get_records),
):
    if actor is None:
        return records.get_public_form_template(template_id)
    return records.get_form_template(actor, template_id)


@templates_router.post("/", response_model=schemas.FormTemplate, status_code=status.HTTP_201_CREATED)
def create_form_template(
    body: schemas.FormTemplateCreate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.create_form_template(actor, payload_of(body))


@templates_router.patch("/{template_id}", response_model=schemas.FormTemplate)
def update_form_template(
    template_id: int,
    body: schemas.FormTemplateUpdate,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.update_form_template(actor, template_id, payload_of(body))


@templates_router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form_template(
    template_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    records.delete_form_template(actor, template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@submissions_router.post("/", response_model=schemas.FormSubmission, status_code=status.HTTP_201_CREATED)
def submit_form(body: schemas.FormSubmissionCreate, records: RecordService = Depends(get_records)):
    return records.submit_form(payload_of(body))


@submissions_router.get("/", response_model=List[schemas.FormSubmission])
def list_form_submissions(
    template_id: Optional[int] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.list_form_submissions(actor, template_id=template_id, status=status_filter)


@submissions_router.get("/{submission_id}", response_model=schemas.FormSubmission)
def get_form_submission(
    submission_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    return records.get_form_submission(actor, submission_id)


@submissions_router.post("/{submission_id}/process", response_model=schemas.Client, status_code=status.HTTP_201_CREATED)
def process_form_submission(
    submission_id: int,
    actor: Actor = Depends(get_current_actor),
    processor: SubmissionProcessor = Depends(get_processor),
):
    return processor.process(submission_id, actor)


@submissions_router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form_submission(
    submission_id: int,
    actor: Actor = Depends(get_current_actor),
    records: RecordService = Depends(get_records),
):
    records.delete_form_submission(actor, submission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
