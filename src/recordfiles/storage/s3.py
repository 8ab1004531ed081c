import io
import logging
from pathlib import Path
from typing import IO, BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.recordfiles.exceptions import StorageError

from .base import BaseBucket, BaseStorage

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


class _S3WriteStream(io.BytesIO):
    """Buffers writes in memory and uploads the content on close."""

    def __init__(self, bucket: "S3Bucket", object_key: str):
        super().__init__()
        self._bucket = bucket
        self._object_key = object_key

    def close(self) -> None:
        if not self.closed:
            self.seek(0)
            self._bucket.put(self, self._object_key)
        super().close()


class S3Bucket(BaseBucket):
    """
    Wraps one bucket of any S3-compatible service.
    """

    def __init__(self, name: str, client, public: bool = False):
        super().__init__(name)
        self.s3 = client
        self.public = public  # if True: return raw https URL instead of presigned

    # ---------- API ---------- #
    def put(self, file: BinaryIO, object_key: str) -> None:
        try:
            self.s3.upload_fileobj(file, self.name, object_key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload failed for {object_key}: {e}") from e

    def get(self, object_key: str, dest: Path) -> Path:
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.s3.download_file(self.name, object_key, str(dest))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Download failed for {object_key}: {e}") from e
        return dest

    def delete(self, object_key: str) -> bool:
        try:
            self.s3.delete_object(Bucket=self.name, Key=object_key)
        except ClientError as e:
            if _is_missing(e):
                return True
            raise StorageError(f"Failed to delete {object_key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete {object_key}: {e}") from e
        return True

    def exists(self, object_key: str) -> bool:
        try:
            self.s3.head_object(Bucket=self.name, Key=object_key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageError(f"Unable to check {object_key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Unable to check {object_key}: {e}") from e
        return True

    def read(self, object_key: str) -> bytes:
        try:
            response = self.s3.get_object(Bucket=self.name, Key=object_key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Unable to read {object_key}: {e}") from e

    def open(self, object_key: str, mode: str = "r") -> IO:
        if any(flag in mode for flag in "wax"):
            stream = _S3WriteStream(self, object_key)
            if "b" not in mode:
                return io.TextIOWrapper(stream, encoding="utf-8")
            return stream
        content = io.BytesIO(self.read(object_key))
        if "b" not in mode:
            return io.TextIOWrapper(content, encoding="utf-8")
        return content

    def url(self, object_key: str, expires: int = 3600) -> str:
        if self.public:
            # Works if bucket policy allows public read
            endpoint = self.s3.meta.endpoint_url or "https://s3.amazonaws.com"
            return f"{endpoint.rstrip('/')}/{self.name}/{object_key}"
        # Pre-signed, time-limited URL
        return self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.name, "Key": object_key},
            ExpiresIn=expires,
        )


class S3Storage(BaseStorage):
    """
    Maps bucket names onto S3 buckets.
    Requires environment variables or explicit kwargs
    for credentials & region (AWS works out of the box; MinIO needs endpoint_url).
    """

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public: bool = False,
        bucket_prefix: str = "",
        client=None,
    ):
        self.bucket_prefix = bucket_prefix
        self.public = public
        if client is None:
            extra_cfg = {"region_name": region} if region else {}
            client = boto3.client("s3", endpoint_url=endpoint_url or None, **extra_cfg)
        self.s3 = client
        self.region = region

    # ---------- helpers ---------- #
    def _bucket_name(self, name: str) -> str:
        return f"{self.bucket_prefix}{name}"

    # ---------- API ---------- #
    def has_bucket(self, name: str) -> bool:
        try:
            self.s3.head_bucket(Bucket=self._bucket_name(name))
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageError(f"Unable to check bucket {name}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Unable to check bucket {name}: {e}") from e
        return True

    def create_bucket(self, name: str) -> None:
        params = {"Bucket": self._bucket_name(name)}
        if self.region and self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.s3.create_bucket(**params)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Unable to create bucket {name}: {e}") from e
        logger.info(f"Created S3 bucket '{params['Bucket']}'")

    def get_bucket(self, name: str) -> S3Bucket:
        return S3Bucket(self._bucket_name(name), self.s3, public=self.public)
