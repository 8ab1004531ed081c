# recordfiles/storage/local.py
import logging
import shutil
from pathlib import Path
from typing import IO
from urllib.parse import urljoin

from src.recordfiles.exceptions import StorageError

from .base import BaseBucket, BaseStorage, copy_stream

logger = logging.getLogger(__name__)


class LocalBucket(BaseBucket):
    """
    Stores files under <root>/<bucket name>/<object_key>
    where *object_key* can include slashes (e.g. 1/5/51_3.png).

    Because everything is already local, `get()` just copies
    the file into *dest* so callers can treat all back-ends the same way.
    """

    def __init__(self, name: str, root: Path, base_url: str = "/files/"):
        super().__init__(name)
        self.root = root
        self.base_url = base_url.rstrip("/") + "/" + name + "/"

    # ---------- helpers ---------- #
    def _full(self, key: str) -> Path:
        path = self.root.joinpath(key).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError(f"Object key '{key}' escapes bucket '{self.name}'")
        return path

    # ---------- API ---------- #
    def put(self, file, object_key: str) -> None:
        try:
            copy_stream(file, self._full(object_key))
        except OSError as e:
            raise StorageError(f"Unable to write '{object_key}' to bucket '{self.name}': {e}") from e

    def get(self, object_key: str, dest: Path) -> Path:
        src = self._full(object_key)
        dest = Path(dest)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(src, dest)
        except OSError as e:
            raise StorageError(f"Unable to read '{object_key}' from bucket '{self.name}': {e}") from e
        return dest

    def delete(self, object_key: str) -> bool:
        try:
            self._full(object_key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Unable to delete '{object_key}' from bucket '{self.name}': {e}") from e
        return True

    def exists(self, object_key: str) -> bool:
        return self._full(object_key).is_file()

    def read(self, object_key: str) -> bytes:
        try:
            return self._full(object_key).read_bytes()
        except OSError as e:
            raise StorageError(f"Unable to read '{object_key}' from bucket '{self.name}': {e}") from e

    def open(self, object_key: str, mode: str = "r") -> IO:
        path = self._full(object_key)
        try:
            if any(flag in mode for flag in "wax+"):
                path.parent.mkdir(parents=True, exist_ok=True)
            return open(path, mode)
        except OSError as e:
            raise StorageError(f"Unable to open '{object_key}' in bucket '{self.name}': {e}") from e

    def url(self, object_key: str, expires: int = 3600) -> str:
        # No signing, just the static URL
        return urljoin(self.base_url, object_key)


class LocalStorage(BaseStorage):
    """Keeps one directory per bucket under *base_path*."""

    def __init__(self, base_path: str = "/var/_uploads", base_url: str = "/files/"):
        self.root = Path(base_path).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url

    def _bucket_path(self, name: str) -> Path:
        return self.root / name

    def has_bucket(self, name: str) -> bool:
        return self._bucket_path(name).is_dir()

    def create_bucket(self, name: str) -> None:
        try:
            self._bucket_path(name).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Unable to create bucket '{name}': {e}") from e
        logger.info(f"Created local bucket '{name}' in {self.root}")

    def get_bucket(self, name: str) -> LocalBucket:
        if not self.has_bucket(name):
            raise StorageError(f"Bucket '{name}' does not exist")
        return LocalBucket(name, self._bucket_path(name).resolve(), self.base_url)
