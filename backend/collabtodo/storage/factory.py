import os
import logging
from functools import lru_cache
from .base import StorageBackend

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """FastAPI dependency returning the configured picture storage."""
    if os.getenv("S3_BUCKET_NAME"):
        from .s3 import S3Storage
        logger.info("Using S3 storage for profile pictures")
        return S3Storage()

    from .local import LocalStorage
    logger.info("Using local storage for profile pictures")
    return LocalStorage()
