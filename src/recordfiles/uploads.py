"""Uploaded files and the intake that hands them to file behaviors.

The HTTP layer stages the files of a request with :func:`stage_uploads` and
binds the resulting intake with :func:`use_upload_intake`; behaviors then pick
up the file submitted for their field when the owning record is saved.
"""

import logging
import mimetypes
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, Optional, Protocol, Tuple

import aiofiles
from pydantic import BaseModel, ConfigDict
from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class UploadedFile(BaseModel):
    """A file available on the local disk, waiting to be stored."""
    model_config = ConfigDict(frozen=True)

    name: str
    temp_path: str
    size: int = 0
    content_type: Optional[str] = None
    error: Optional[str] = None
    is_temporary: bool = False  # staged copy owned by the intake, removable once stored

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lstrip(".").lower()

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_path(cls, path: str | os.PathLike) -> "UploadedFile":
        """Wrap an existing local file, which is never removed automatically."""
        path = os.fspath(path)
        return cls(
            name=os.path.basename(path),
            temp_path=path,
            size=os.path.getsize(path),
            content_type=mimetypes.guess_type(path)[0],
        )


class UploadIntake(Protocol):
    def fetch(self, field_name: str, tabular_index: Optional[int] = None) -> Optional[UploadedFile]:
        ...


def field_key(field_name: str, tabular_index: Optional[int] = None) -> str:
    if tabular_index is None:
        return field_name
    return f"{field_name}[{tabular_index}]"


class RequestUploadIntake:
    """Uploaded files of one request, keyed by form field name."""

    def __init__(self, files: Optional[Dict[str, UploadedFile]] = None):
        self._files: Dict[str, UploadedFile] = dict(files or {})

    def add(self, key: str, uploaded_file: UploadedFile) -> None:
        self._files[key] = uploaded_file

    def fetch(self, field_name: str, tabular_index: Optional[int] = None) -> Optional[UploadedFile]:
        return self._files.get(field_key(field_name, tabular_index))

    def close(self) -> None:
        """Remove staged files no behavior consumed."""
        for uploaded_file in self._files.values():
            if uploaded_file.is_temporary and os.path.exists(uploaded_file.temp_path):
                os.remove(uploaded_file.temp_path)
        self._files.clear()

    def __len__(self) -> int:
        return len(self._files)


async def stage_uploads(items: Iterable[Tuple[str, Any]], temp_dir: str | os.PathLike) -> RequestUploadIntake:
    """Copy the uploaded files among form *items* to *temp_dir*.

    *items* are `(field name, value)` pairs, e.g. `(await request.form()).multi_items()`;
    values which are not uploads are skipped.
    """
    temp_dir = Path(temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    intake = RequestUploadIntake()
    for key, value in items:
        if not isinstance(value, UploadFile):
            continue
        if not value.filename:
            intake.add(key, UploadedFile(name="", temp_path="", error="No file was uploaded"))
            continue
        temp_path = temp_dir / f"{uuid.uuid4().hex}_{os.path.basename(value.filename)}"
        size = 0
        async with aiofiles.open(temp_path, "wb") as out:
            while chunk := await value.read(CHUNK_SIZE):
                size += len(chunk)
                await out.write(chunk)
        intake.add(key, UploadedFile(
            name=value.filename,
            temp_path=str(temp_path),
            size=size,
            content_type=value.content_type,
            is_temporary=True,
        ))
        logger.debug(f"Staged upload '{value.filename}' for field '{key}' at {temp_path}")
    return intake


_current_intake: ContextVar[Optional[UploadIntake]] = ContextVar("upload_intake", default=None)


def get_upload_intake() -> Optional[UploadIntake]:
    return _current_intake.get()


@contextmanager
def use_upload_intake(intake: UploadIntake) -> Generator[UploadIntake, None, None]:
    """Make *intake* the ambient upload source for the enclosed code."""
    token = _current_intake.set(intake)
    try:
        yield intake
    finally:
        _current_intake.reset(token)
