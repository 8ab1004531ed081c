import logging
from typing import Callable, Optional, Union

from src.recordfiles.storage import BaseBucket, BaseStorage, get_storage

logger = logging.getLogger(__name__)


class BucketResolver:
    """Resolves the bucket holding a behavior's files, creating it if needed.

    The resolved handle is cached, later calls do not touch the storage.
    """

    def __init__(
        self,
        bucket: Union[None, str, BaseBucket] = None,
        storage: Optional[BaseStorage] = None,
        default_name: Optional[Callable[[], str]] = None,
    ):
        self.bucket = bucket
        self.storage = storage
        self.default_name = default_name

    def resolve(self) -> BaseBucket:
        if isinstance(self.bucket, BaseBucket):
            return self.bucket

        storage = self.storage if self.storage is not None else get_storage()
        if self.bucket is None:
            bucket_name = self.default_name()
        else:
            bucket_name = self.bucket
        if not storage.has_bucket(bucket_name):
            logger.info(f"Bucket '{bucket_name}' not found, creating it")
            storage.create_bucket(bucket_name)
        self.bucket = storage.get_bucket(bucket_name)
        return self.bucket
