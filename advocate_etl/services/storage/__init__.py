"""Source stores for raw advocate documents."""

from advocate_etl.core.config import Settings
from advocate_etl.core.exceptions import ConfigurationError
from advocate_etl.services.storage.source_store import LocalSourceStore, SourceStore, is_source_file
from advocate_etl.services.storage.supabase_source_store import SupabaseSourceStore


def get_source_store(settings: Settings) -> SourceStore:
    """Build the source store selected by ``STORAGE_TYPE``.

    Raises:
        ConfigurationError: If the storage type is unknown or incompletely configured
    """
    storage = settings.storage
    storage_type = storage.type.lower()

    if storage_type == "local":
        return LocalSourceStore(storage.local_path, quarantine_dir=storage.quarantine_dir)

    if storage_type == "supabase":
        if not storage.supabase_url or not storage.supabase_service_role_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for supabase storage"
            )
        return SupabaseSourceStore(
            url=storage.supabase_url,
            service_role_key=storage.supabase_service_role_key,
            bucket=storage.supabase_bucket,
            prefix=storage.supabase_prefix,
            quarantine_dir=storage.quarantine_dir,
            timeout=settings.http_timeout,
        )

    raise ConfigurationError(f"Unknown storage type: {storage.type}")


__all__ = [
    "LocalSourceStore",
    "SourceStore",
    "SupabaseSourceStore",
    "get_source_store",
    "is_source_file",
]
