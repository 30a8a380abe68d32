"""
Backend adapters and the factory that picks one from configuration.
"""
import logging

from salesdesk.db.repository import Repository
from salesdesk.errors import ConfigurationError
from salesdesk.utils.settings import Settings

from .base import RowRepository
from .sql import SqlRepository
from .supabase import PostgrestClient, SupabaseRepository
from .baserow import BaserowClient, BaserowRepository, BaserowSchema, load_schema_file

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> Repository:
    """Construct the adapter selected by ``settings.storage_backend``.

    Raises ConfigurationError when the selected backend lacks configuration;
    there is no fallback to a different backend.
    """
    backend = settings.storage_backend
    logger.info("storage backend: %s", backend)
    if backend == "sql":
        if not settings.database_url:
            raise ConfigurationError("sql backend requires DATABASE_URL or POSTGRES_* variables")
        return SqlRepository.from_url(settings.database_url)
    if backend == "supabase":
        if not (settings.supabase_url and settings.supabase_service_key):
            raise ConfigurationError("supabase backend requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
        return SupabaseRepository.from_settings(
            settings.supabase_url, settings.supabase_service_key, timeout=settings.http_timeout_seconds,
        )
    if backend == "baserow":
        if not (settings.baserow_api_url and settings.baserow_api_key):
            raise ConfigurationError("baserow backend requires BASEROW_API_URL and BASEROW_API_KEY")
        return BaserowRepository.from_settings(
            settings.baserow_api_url,
            settings.baserow_api_key,
            settings.baserow_schema_file,
            timeout=settings.http_timeout_seconds,
        )
    raise ConfigurationError(f"Unsupported storage backend '{backend}'")


__all__ = [
    "build_repository",
    "RowRepository",
    "SqlRepository",
    "SupabaseRepository",
    "PostgrestClient",
    "BaserowRepository",
    "BaserowClient",
    "BaserowSchema",
    "load_schema_file",
]
