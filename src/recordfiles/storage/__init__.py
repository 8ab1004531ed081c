from .local import LocalBucket, LocalStorage
from .s3 import S3Bucket, S3Storage
from .base import BaseBucket, BaseStorage
from functools import lru_cache
from src.recordfiles.configs.config import get_config
from src.recordfiles.exceptions import ConfigurationError


@lru_cache
def get_storage() -> BaseStorage:
    config = get_config()
    backend = config.storage_backend
    if backend == "s3":
        return S3Storage(
            region=config.s3_region or None,
            endpoint_url=config.s3_endpoint_url or None,  # leave empty for AWS
            bucket_prefix=config.s3_bucket_prefix,
            public=config.s3_public,
        )
    elif backend == "local":
        return LocalStorage(
            base_path=config.local_path,
            base_url=config.local_base_url,
        )
    else:
        raise ConfigurationError(f"Unknown storage backend: {backend}")


__all__ = [
    "BaseBucket",
    "BaseStorage",
    "LocalBucket",
    "LocalStorage",
    "S3Bucket",
    "S3Storage",
    "get_storage",
]
