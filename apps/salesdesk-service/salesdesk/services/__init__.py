"""
Service layer: authorization-aware operations on top of the repository.
"""

from .auth_service import CredentialManager, check_password_strength
from .dashboard import DashboardService
from .records import RecordService
from .submission_processor import SubmissionProcessor, client_fields_from

__all__ = [
    "CredentialManager",
    "check_password_strength",
    "DashboardService",
    "RecordService",
    "SubmissionProcessor",
    "client_fields_from",
]
