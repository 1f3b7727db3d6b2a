"""
Wire a QueueService from Settings.

    from simplq import create_service, setup_logging

    setup_logging()
    service = create_service()          # reads SIMPLQ_* from the environment
"""
from __future__ import annotations

from simplq.adapters.storage.filesystem import LocalFileSystemStorage
from simplq.adapters.storage.gcs import GCSStorage
from simplq.adapters.storage.memory import InMemoryStorage
from simplq.adapters.storage.s3 import S3Storage
from simplq.config import Settings, get_settings
from simplq.core.service import QueueService
from simplq.domain.errors import InvalidArgumentError
from simplq.observability.logging import get_logger
from simplq.ports.storage import ObjectStoragePort

logger = get_logger(__name__)


def create_storage(settings: Settings) -> ObjectStoragePort:
    """Build the ObjectStoragePort selected by ``settings.storage_backend``."""
    match settings.storage_backend:
        case "memory":
            return InMemoryStorage()
        case "filesystem":
            return LocalFileSystemStorage(settings.storage_path)
        case "s3":
            if not settings.s3_bucket:
                raise InvalidArgumentError("SIMPLQ_S3_BUCKET is required for the s3 backend")
            return S3Storage(
                bucket=settings.s3_bucket,
                prefix=settings.storage_prefix,
                region_name=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url,
            )
        case "gcs":
            if not settings.gcs_bucket:
                raise InvalidArgumentError("SIMPLQ_GCS_BUCKET is required for the gcs backend")
            return GCSStorage(
                bucket_name=settings.gcs_bucket,
                prefix=settings.storage_prefix,
            )
        case _:
            raise InvalidArgumentError(
                f"Unknown storage backend: {settings.storage_backend!r}"
            )


def create_service(settings: Settings | None = None) -> QueueService:
    """Build a QueueService from ``settings`` (environment-derived by default)."""
    settings = settings or get_settings()
    storage = create_storage(settings)
    logger.info(
        "service.created",
        storage_backend=settings.storage_backend,
        lock_scope=settings.lock_scope,
    )
    return QueueService.from_storage(
        storage,
        lock_scope=settings.lock_scope,
        max_retries=settings.max_retries,
    )
