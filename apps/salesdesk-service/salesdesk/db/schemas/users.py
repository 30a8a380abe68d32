from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from salesdesk.utils.role_permissions import RoleEnum, UserSector
from .base import Record, check_email, require_text


class UserBase(BaseModel):
    name: str
    email: str
    role: RoleEnum = RoleEnum.agent
    sector: Optional[UserSector] = None
    phone: str = ""
    organization_id: Optional[int] = None


class UserCreate(UserBase):
    """Storage payload; the caller has already hashed the password."""

    password_hash: str

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        return require_text(v, "name")

    @field_validator("email")
    @classmethod
    def _email_valid(cls, v: str):
        return check_email(v)

    @field_validator("password_hash")
    @classmethod
    def _hash_required(cls, v: str):
        return require_text(v, "password")


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[RoleEnum] = None
    sector: Optional[UserSector] = None
    phone: Optional[str] = None
    organization_id: Optional[int] = None
    password_hash: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]):
        return None if v is None else require_text(v, "name")

    @field_validator("email")
    @classmethod
    def _email_valid(cls, v: Optional[str]):
        return None if v is None else check_email(v)


class User(Record):
    id: str
    name: str = ""
    email: str = ""
    role: str = RoleEnum.agent.value
    sector: str = ""
    phone: str = ""
    organization_id: Optional[int] = None
    password_hash: str = Field(default="", exclude=True, repr=False)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserRegistration(UserBase):
    """Account creation request; the password is hashed before storage."""

    password: str


class PasswordChange(BaseModel):
    new_password: str
    current_password: Optional[str] = None
