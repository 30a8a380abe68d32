"""
Typed outcomes shared by every repository adapter and service.

Adapters translate backend-native failures into exactly one of these classes;
nothing below the repository boundary may leak a driver or HTTP exception.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ForbiddenReason(str, Enum):
    WRONG_ORGANIZATION = "wrong_organization"
    NOT_CREATOR = "not_creator"
    ROLE_NOT_PERMITTED = "role_not_permitted"
    UNAUTHENTICATED = "unauthenticated"


class ConflictReason(str, Enum):
    DUPLICATE_EMAIL = "duplicate_email"
    HAS_DEPENDENTS = "has_dependents"
    LAST_ADMIN = "last_admin"


class ConfigurationError(RuntimeError):
    """Startup-time misconfiguration of the selected backend."""


class RepositoryError(Exception):
    """Base class for typed repository outcomes."""

    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationFailed(RepositoryError):
    code = "validation_failed"

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        summary = "; ".join(f"{k}: {v}" for k, v in sorted(self.field_errors.items()))
        super().__init__(f"Invalid input ({summary})")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.field_errors
        return data


class NotFound(RepositoryError):
    code = "not_found"

    def __init__(self, kind: str, identifier: Any = None):
        self.kind = kind
        self.identifier = identifier
        label = kind.replace("_", " ").capitalize()
        super().__init__(f"{label} not found" if identifier is None else f"{label} {identifier} not found")


class Forbidden(RepositoryError):
    code = "forbidden"

    def __init__(self, reason: ForbiddenReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or _FORBIDDEN_MESSAGES[reason])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason.value
        return data


_FORBIDDEN_MESSAGES = {
    ForbiddenReason.WRONG_ORGANIZATION: "Record belongs to another organization",
    ForbiddenReason.NOT_CREATOR: "Only the creator of this record may access it",
    ForbiddenReason.ROLE_NOT_PERMITTED: "Your role cannot perform this operation",
    ForbiddenReason.UNAUTHENTICATED: "Authentication required",
}


class Conflict(RepositoryError):
    code = "conflict"

    def __init__(self, reason: ConflictReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason.value.replace("_", " "))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason.value
        return data


class BackendUnavailable(RepositoryError):
    code = "backend_unavailable"

    def __init__(self, message: str = "service temporarily unavailable"):
        super().__init__(message)


class AlreadyProcessed(RepositoryError):
    code = "already_processed"

    def __init__(self, submission_id: Any):
        self.submission_id = submission_id
        super().__init__(f"Form submission {submission_id} has already been processed")


__all__ = [
    "ForbiddenReason",
    "ConflictReason",
    "ConfigurationError",
    "RepositoryError",
    "ValidationFailed",
    "NotFound",
    "Forbidden",
    "Conflict",
    "BackendUnavailable",
    "AlreadyProcessed",
]
