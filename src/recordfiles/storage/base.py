# recordfiles/storage/base.py
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, BinaryIO


class BaseBucket(ABC):
    """
    Minimal contract all storage buckets must fulfil.
    Every method is synchronous on purpose: file behaviors run inside
    ORM flush events, which cannot await.
    Back-end failures are raised as StorageError.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def put(self, file: BinaryIO, object_key: str) -> None:
        """Save *file* (opened in binary mode) under *object_key*."""
        ...

    @abstractmethod
    def get(self, object_key: str, dest: Path) -> Path:
        """Download the object to *dest* (a local path) and return that path."""
        ...

    @abstractmethod
    def delete(self, object_key: str) -> bool:
        """Remove the object. Removing a missing object is a successful no-op."""
        ...

    @abstractmethod
    def exists(self, object_key: str) -> bool:
        """Check whether the object is stored."""
        ...

    @abstractmethod
    def read(self, object_key: str) -> bytes:
        """Return the object content."""
        ...

    @abstractmethod
    def open(self, object_key: str, mode: str = "r") -> IO:
        """Open the object as a stream, in any regular file *mode*."""
        ...

    @abstractmethod
    def url(self, object_key: str, expires: int = 3600) -> str:
        """Return a publicly accessible (or pre-signed) URL."""
        ...

    # ---------- shortcuts ---------- #
    def copy_in(self, local_path: str | Path, object_key: str) -> bool:
        """Store the local file *local_path* under *object_key*."""
        with open(local_path, "rb") as source:
            self.put(source, object_key)
        return True

    def copy_out(self, object_key: str, local_path: str | Path) -> bool:
        """Copy the object into the local file *local_path*."""
        self.get(object_key, Path(local_path))
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name})>"


class BaseStorage(ABC):
    """
    A storage provider: owns named buckets.
    """

    @abstractmethod
    def has_bucket(self, name: str) -> bool:
        """Check whether the bucket *name* exists."""
        ...

    @abstractmethod
    def create_bucket(self, name: str) -> None:
        """Create the bucket *name*."""
        ...

    @abstractmethod
    def get_bucket(self, name: str) -> BaseBucket:
        """Return the handle of the bucket *name*."""
        ...


def copy_stream(source: BinaryIO, dest: Path) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)
    with open(dest, "wb") as out:
        shutil.copyfileobj(source, out)
    return dest
