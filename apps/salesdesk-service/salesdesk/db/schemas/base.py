"""
Shared Pydantic base for stored entities.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class Record(BaseModel):
    """Read model for a stored row.

    Text columns that a backend returns as null or omits read back as "".
    """

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _absent_text_is_blank(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, field in cls.model_fields.items():
            if field.annotation is str and data.get(name) is None:
                data[name] = ""
        return data


def require_text(value: str, label: str = "value") -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"{label} is required")
    return cleaned


def check_email(value: str) -> str:
    cleaned = require_text(value, "email").lower()
    local, _, domain = cleaned.partition("@")
    if not local or "." not in domain or " " in cleaned:
        raise ValueError("invalid email address")
    return cleaned
