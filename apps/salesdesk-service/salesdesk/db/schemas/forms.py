"""Dynamic intake form templates and their public submissions."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import Record, require_text


class FormFieldType(str, Enum):
    text = "text"
    number = "number"
    email = "email"
    phone = "phone"
    date = "date"
    select = "select"
    checkbox = "checkbox"
    radio = "radio"
    textarea = "textarea"
    cpf = "cpf"
    cnpj = "cnpj"
    currency = "currency"


class SubmissionStatus(str, Enum):
    pending = "pending"
    processed = "processed"


class FormFieldOption(BaseModel):
    label: str
    value: str


class FormField(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    label: str = ""
    type: FormFieldType = FormFieldType.text
    required: bool = False
    options: List[FormFieldOption] = []
    default_value: Optional[str] = None
    placeholder: str = ""
    help_text: str = ""

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        return require_text(v, "field name")


def _unique_field_names(fields: Optional[List[FormField]]):
    if fields is None:
        return fields
    seen = set()
    for f in fields:
        if f.name in seen:
            raise ValueError(f"duplicate field name '{f.name}'")
        seen.add(f.name)
    return fields


class FormTemplateBase(BaseModel):
    name: str
    description: str = ""
    fields: List[FormField] = []
    active: bool = True


class FormTemplateCreate(FormTemplateBase):
    organization_id: Optional[int] = None
    created_by_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        return require_text(v, "name")

    @field_validator("fields")
    @classmethod
    def _fields_unique(cls, v):
        return _unique_field_names(v)


class FormTemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    fields: Optional[List[FormField]] = None
    active: Optional[bool] = None
    organization_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]):
        return None if v is None else require_text(v, "name")

    @field_validator("fields")
    @classmethod
    def _fields_unique(cls, v):
        return _unique_field_names(v)


class FormTemplate(Record):
    id: int
    name: str = ""
    description: str = ""
    fields: List[FormField] = []
    active: bool = True
    organization_id: Optional[int] = None
    created_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("fields", mode="before")
    @classmethod
    def _null_fields(cls, v):
        return [] if v is None else v


class FormSubmissionCreate(BaseModel):
    """Anonymous payload; organization and status are derived on create."""

    form_template_id: int
    data: Dict[str, Any] = {}


class FormSubmission(Record):
    id: int
    form_template_id: Optional[int] = None
    data: Dict[str, Any] = {}
    status: str = SubmissionStatus.pending.value
    client_id: Optional[int] = None
    organization_id: Optional[int] = None
    processed_by_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, v):
        return {} if v is None else v
