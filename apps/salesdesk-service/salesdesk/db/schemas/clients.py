from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .base import Record, check_email, require_text


class ClientBase(BaseModel):
    name: str
    cpf: str = ""
    phone: str = ""
    email: str = ""
    birth_date: str = ""
    company: str = ""
    contact: str = ""
    agreement_id: Optional[int] = None


class ClientCreate(ClientBase):
    created_by_id: Optional[str] = None
    organization_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        return require_text(v, "name")

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str):
        # email is optional on clients, but must be well formed when present
        return check_email(v) if (v or "").strip() else ""


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[str] = None
    company: Optional[str] = None
    contact: Optional[str] = None
    agreement_id: Optional[int] = None
    organization_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]):
        return None if v is None else require_text(v, "name")

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: Optional[str]):
        if v is None or not v.strip():
            return v
        return check_email(v)


class Client(Record, ClientBase):
    id: int
    name: str = ""
    created_by_id: Optional[str] = None
    organization_id: Optional[int] = None
    created_at: Optional[datetime] = None
