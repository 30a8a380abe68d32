from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .base import Record, require_text


class OrganizationBase(BaseModel):
    name: str
    address: str = ""
    phone: str = ""
    cnpj: str = ""
    email: str = ""
    website: str = ""
    description: str = ""
    logo: str = ""


class OrganizationCreate(OrganizationBase):
    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        return require_text(v, "name")


class OrganizationUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    cnpj: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]):
        return None if v is None else require_text(v, "name")


class Organization(Record, OrganizationBase):
    id: int
    name: str = ""
    created_at: Optional[datetime] = None
