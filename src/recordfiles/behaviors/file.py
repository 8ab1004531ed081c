"""Single file per record.

:class:`FileBehavior` stores one file per database record. The record keeps the
file extension and a version number, bumped on every save, so each upload gets
a new storage key and cached copies of the old one never shadow it::

    class Document(VersionedFileMixin, Base):
        __tablename__ = "documents"
        id: Mapped[int] = mapped_column(primary_key=True)

        file = FileAttachment(FileBehavior, subdir_template="{^^pk}/{^pk}")

    document.file.save_file("/tmp/report.pdf")
    document.file.get_file_url()

When the owner is saved the behavior looks for an attached upload - set through
:attr:`FileBehavior.uploaded_file` or found in the ambient upload intake under
the :attr:`file_attribute` field - and stores it.
"""

import logging
import os
from pathlib import Path
from typing import IO, Any, Callable, Optional, Union

from src.recordfiles.configs.config import get_config
from src.recordfiles.records import Record, base_type_name
from src.recordfiles.storage import BaseBucket, BaseStorage
from src.recordfiles.uploads import UploadedFile, UploadIntake, get_upload_intake

from .bucket import BucketResolver
from .naming import FileNamer
from .template import camel_to_id
from .version import VersionTracker

logger = logging.getLogger(__name__)

FileSource = Union[UploadedFile, str, os.PathLike]


class FileBehavior:
    """Manages the single file attached to a record."""

    def __init__(
        self,
        record: Record,
        file_attribute: str = "file",
        storage: Optional[BaseStorage] = None,
        bucket: Union[None, str, BaseBucket] = None,
        subdir_template: Union[None, str, Callable[[Any], str]] = "{^^pk}/{^pk}",
        extension_attribute: str = "file_extension",
        version_attribute: str = "file_version",
        tabular_input_index: Optional[int] = None,
        default_file_url: Optional[str] = None,
        auto_fetch_uploaded_file: bool = True,
        upload_intake: Optional[UploadIntake] = None,
    ):
        self.record = record
        self.file_attribute = file_attribute
        self.extension_attribute = extension_attribute
        self.version_attribute = version_attribute
        self.tabular_input_index = tabular_input_index
        self.default_file_url = default_file_url
        self.auto_fetch_uploaded_file = auto_fetch_uploaded_file
        self.upload_intake = upload_intake

        self.version_tracker = VersionTracker(record, version_attribute)
        self.namer = self._create_namer(subdir_template)
        self.bucket_resolver = BucketResolver(bucket, storage, self.default_bucket_name)
        self._uploaded_file: Optional[FileSource] = None

    def _create_namer(self, subdir_template) -> FileNamer:
        return FileNamer(
            self.record,
            self.version_tracker,
            subdir_template=subdir_template,
            extension_attribute=self.extension_attribute,
            file_attribute=self.file_attribute,
        )

    # ---------- uploaded file ---------- #
    @property
    def uploaded_file(self) -> Optional[UploadedFile]:
        if not isinstance(self._uploaded_file, UploadedFile):
            self._uploaded_file = self.ensure_uploaded_file(self._uploaded_file)
        return self._uploaded_file

    @uploaded_file.setter
    def uploaded_file(self, value: Optional[FileSource]) -> None:
        self._uploaded_file = value

    def supports_field(self, name: str) -> bool:
        """Whether *name* is the virtual file field handled by this behavior."""
        return name == self.file_attribute

    def get_field(self, name: str) -> Optional[UploadedFile]:
        if not self.supports_field(name):
            raise AttributeError(f"{type(self).__name__} has no field '{name}'")
        return self.uploaded_file

    def set_field(self, name: str, value: Optional[FileSource]) -> None:
        if not self.supports_field(name):
            raise AttributeError(f"{type(self).__name__} has no field '{name}'")
        self.uploaded_file = value

    def ensure_uploaded_file(self, uploaded_file: Optional[FileSource] = None) -> Optional[UploadedFile]:
        """Turn a local path into an UploadedFile or look up the request upload.

        An upload whose staged file is gone has already been stored and is ignored.
        """
        if isinstance(uploaded_file, UploadedFile):
            return uploaded_file
        if uploaded_file:
            return UploadedFile.from_path(uploaded_file)

        if self.auto_fetch_uploaded_file:
            intake = self.upload_intake if self.upload_intake is not None else get_upload_intake()
            if intake is not None:
                uploaded_file = intake.fetch(self.file_attribute, self.tabular_input_index)
                if uploaded_file is not None:
                    if not uploaded_file.has_error and not os.path.exists(uploaded_file.temp_path):
                        return None
                    return uploaded_file
        return None

    # ---------- bucket ---------- #
    def default_bucket_name(self) -> str:
        return camel_to_id(base_type_name(self.record))

    def ensure_file_storage_bucket(self) -> BaseBucket:
        return self.bucket_resolver.resolve()

    # ---------- naming ---------- #
    def get_actual_subdir(self) -> str:
        return self.namer.subdir()

    def get_current_file_version(self) -> int:
        return self.version_tracker.current()

    def get_next_file_version(self) -> int:
        return self.version_tracker.next()

    def get_file_self_name(self, version: Optional[int] = None, extension: Optional[str] = None) -> str:
        return self.namer.self_name(None, version, extension)

    def get_file_full_name(self, version: Optional[int] = None, extension: Optional[str] = None) -> str:
        return self.namer.full_name(None, version, extension)

    # ---------- main file operations ---------- #
    def save_file(self, source: FileSource, delete_source: Optional[bool] = None) -> bool:
        """Store *source* as the new file of the record.

        The current file is removed first, the new one is stored under the next
        version and, once stored, version and extension are saved on the record.
        With `delete_source=None` only temporary uploads are removed afterwards.
        """
        self.validate_save_configuration()
        self.delete_file()

        version = self.get_next_file_version()
        if isinstance(source, UploadedFile):
            source_path = source.temp_path
            extension = source.extension
            if delete_source is None:
                delete_source = source.is_temporary
        else:
            source_path = os.fspath(source)
            extension = Path(source_path).suffix.lstrip(".").lower()

        result = self.new_file(source_path, version, extension)

        if self.should_persist(result):
            if result and delete_source and os.path.exists(source_path):
                os.remove(source_path)
            self.record.update_attributes({
                self.version_attribute: version,
                self.extension_attribute: extension,
            })
            logger.info(f"Saved file version {version} for {self.record.type_name} {self.namer.base_name()}")
        else:
            logger.warning(f"Unable to save file for {self.record.type_name} {self.namer.base_name()}")
        return result

    def validate_save_configuration(self) -> None:
        """Raise ConfigurationError before a save touches any stored file."""

    def should_persist(self, result: bool) -> bool:
        """Whether version and extension are saved after storing a new file."""
        return result

    def new_file(self, source_path: str, version: int, extension: str) -> bool:
        """Copy the source file into the bucket under the given version."""
        file_full_name = self.get_file_full_name(version, extension)
        bucket = self.ensure_file_storage_bucket()
        return bucket.copy_in(source_path, file_full_name)

    def delete_file(self) -> bool:
        """Remove the record's current file. A missing file counts as removed."""
        bucket = self.ensure_file_storage_bucket()
        file_name = self.get_file_full_name()
        if bucket.exists(file_name):
            return bucket.delete(file_name)
        return True

    # ---------- file shortcuts ---------- #
    def file_exists(self) -> bool:
        return self.ensure_file_storage_bucket().exists(self.get_file_full_name())

    def get_file_content(self) -> bytes:
        return self.ensure_file_storage_bucket().read(self.get_file_full_name())

    def open_file(self, mode: str = "r") -> IO:
        return self.ensure_file_storage_bucket().open(self.get_file_full_name(), mode)

    def get_file_url(self) -> str:
        bucket = self.ensure_file_storage_bucket()
        file_full_name = self.get_file_full_name()
        if self.default_file_url:
            if not bucket.exists(file_full_name):
                return self.default_file_url
        return bucket.url(file_full_name, expires=get_config().file_url_expires)

    # ---------- owner events ---------- #
    def after_save(self) -> None:
        """Store the attached upload once the owner is inserted or updated."""
        try:
            uploaded_file = self.uploaded_file
            if uploaded_file is not None and not uploaded_file.has_error:
                self.save_file(uploaded_file)
        finally:
            self.uploaded_file = None

    def before_delete(self) -> None:
        self.delete_file()
