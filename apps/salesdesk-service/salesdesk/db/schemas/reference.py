"""Global reference tables: products, agreements (convenios) and banks."""
from typing import Optional

from pydantic import BaseModel, field_validator

from .base import Record, require_text


class ReferenceBase(BaseModel):
    name: str
    price: str = ""
    description: str = ""


class ReferenceCreate(ReferenceBase):
    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        return require_text(v, "name")


class ReferenceUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]):
        return None if v is None else require_text(v, "name")


class ReferenceRecord(Record, ReferenceBase):
    id: int
    name: str = ""


ProductCreate = ReferenceCreate
ProductUpdate = ReferenceUpdate
AgreementCreate = ReferenceCreate
AgreementUpdate = ReferenceUpdate
BankCreate = ReferenceCreate
BankUpdate = ReferenceUpdate


class Product(ReferenceRecord):
    pass


class Agreement(ReferenceRecord):
    pass


class Bank(ReferenceRecord):
    pass
