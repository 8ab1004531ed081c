"""Several transformed files per record.

:class:`TransformFileBehavior` derives a set of named files from each saved
source file, e.g. an original and a thumbnail. Transformations are configured
in order, each name mapped to the settings passed to the transform callback;
``None`` settings store the source file as is::

    file = FileAttachment(
        TransformFileBehavior,
        transformations=["origin", {"preview": {"pages": 1}}],
        transform_callback=render_preview,
    )

The transform callback is called as ``callback(source_path, destination_path,
settings)`` and returns whether it wrote the destination file.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import IO, Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from src.recordfiles.configs.config import get_config
from src.recordfiles.exceptions import ConfigurationError, StorageError
from src.recordfiles.records import base_type_name

from .file import FileBehavior
from .naming import ExtensionRules, FileNamer

logger = logging.getLogger(__name__)

TransformCallback = Callable[[str, str, Any], Any]


class Transformation(BaseModel):
    """A named derived file; `settings=None` stores the source unmodified."""
    model_config = ConfigDict(frozen=True)

    name: str
    settings: Any = None

    @property
    def is_verbatim(self) -> bool:
        return self.settings is None


TransformationsValue = Union[Mapping[str, Any], Iterable[Union[str, Transformation, Mapping[str, Any]]]]


def parse_transformations(value: Optional[TransformationsValue]) -> List[Transformation]:
    """Flatten transformation configuration into an ordered list.

    Accepts a mapping ``name -> settings`` or a sequence mixing bare names,
    :class:`Transformation` objects and such mappings.
    """
    if not value:
        return []
    if isinstance(value, Mapping):
        value = [value]

    transformations: List[Transformation] = []
    for entry in value:
        if isinstance(entry, Transformation):
            transformations.append(entry)
        elif isinstance(entry, str):
            transformations.append(Transformation(name=entry))
        elif isinstance(entry, Mapping):
            transformations.extend(
                Transformation(name=name, settings=settings) for name, settings in entry.items()
            )
        else:
            raise ConfigurationError(f"Invalid file transformation entry: {entry!r}")

    names = [transformation.name for transformation in transformations]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate file transformation names: {', '.join(duplicates)}")
    return transformations


class TransformFileBehavior(FileBehavior):
    """Manages a set of transformed files derived from one source file per record."""

    def __init__(
        self,
        record,
        transformations: Optional[TransformationsValue] = None,
        transform_callback: Optional[TransformCallback] = None,
        transformation_file_extensions: ExtensionRules = None,
        default_transformation: Optional[str] = None,
        default_file_url: Union[None, str, Mapping[str, str]] = None,
        temp_path: Optional[str] = None,
        **options,
    ):
        self.transformation_file_extensions = transformation_file_extensions
        super().__init__(record, default_file_url=default_file_url, **options)
        self.transformations = transformations
        self.transform_callback = transform_callback
        self.temp_path = temp_path
        self._default_transformation = default_transformation
        self.last_save_results: Dict[str, bool] = {}

    def _create_namer(self, subdir_template) -> FileNamer:
        return FileNamer(
            self.record,
            self.version_tracker,
            subdir_template=subdir_template,
            extension_attribute=self.extension_attribute,
            file_attribute=self.file_attribute,
            extension_rules=self.transformation_file_extensions,
        )

    # ---------- configuration ---------- #
    @property
    def transformations(self) -> List[Transformation]:
        return self._transformations

    @transformations.setter
    def transformations(self, value: Optional[TransformationsValue]) -> None:
        self._transformations = parse_transformations(value)

    def ensure_transformations(self) -> List[Transformation]:
        if not self._transformations:
            raise ConfigurationError("File transformations list is empty.")
        return self._transformations

    @property
    def default_transformation(self) -> str:
        """Transformation used when none is named, the first configured one unless set."""
        if not self._default_transformation:
            return self.ensure_transformations()[0].name
        return self._default_transformation

    @default_transformation.setter
    def default_transformation(self, name: Optional[str]) -> None:
        self._default_transformation = name

    def fetch_transformation_name(self, name: Optional[str] = None) -> str:
        if name is None:
            return self.default_transformation
        return name

    def get_default_file_url(self, name: Optional[str] = None) -> Optional[str]:
        default_file_url = self.default_file_url
        if isinstance(default_file_url, Mapping):
            if not default_file_url:
                return None
            if name is None:
                return next(iter(default_file_url.values()))
            return default_file_url.get(name)
        return default_file_url

    # ---------- naming ---------- #
    def get_file_self_name(
        self,
        transformation: Optional[str] = None,
        version: Optional[int] = None,
        extension: Optional[str] = None,
    ) -> str:
        return self.namer.self_name(self.fetch_transformation_name(transformation), version, extension)

    def get_file_full_name(
        self,
        transformation: Optional[str] = None,
        version: Optional[int] = None,
        extension: Optional[str] = None,
    ) -> str:
        return self.namer.full_name(self.fetch_transformation_name(transformation), version, extension)

    # ---------- main file operations ---------- #
    def new_file(self, source_path: str, version: int, extension: str) -> bool:
        """Store every transformation of the source file.

        All transformations are attempted even once one of them failed.
        """
        transformations = self.ensure_transformations()
        bucket = self.ensure_file_storage_bucket()

        results: Dict[str, bool] = {}
        for transformation in transformations:
            file_full_name = self.get_file_full_name(transformation.name, version, extension)
            try:
                if transformation.is_verbatim:
                    results[transformation.name] = bucket.copy_in(source_path, file_full_name)
                else:
                    results[transformation.name] = self._store_transformed(
                        bucket, source_path, file_full_name, transformation
                    )
            except ConfigurationError:
                raise
            except StorageError as e:
                logger.error(f"Unable to store transformation '{transformation.name}' as {file_full_name}: {e}")
                results[transformation.name] = False
            except Exception as e:
                logger.error(f"Transformation '{transformation.name}' failed for {file_full_name}: {e}")
                results[transformation.name] = False

        self.last_save_results = results
        failed = [name for name, result in results.items() if not result]
        if failed:
            logger.warning(
                f"File transformations {failed} failed for {self.record.type_name} {self.namer.base_name()}"
            )
        return not failed

    def _store_transformed(self, bucket, source_path: str, file_full_name: str, transformation: Transformation) -> bool:
        temp_file_name = os.path.join(
            self.resolve_transform_temp_path(),
            f"{uuid.uuid4().hex}_{os.path.basename(file_full_name)}",
        )
        try:
            if not self.transform_file(source_path, temp_file_name, transformation.settings):
                logger.warning(f"Transformation '{transformation.name}' did not produce {file_full_name}")
                return False
            return bucket.copy_in(temp_file_name, file_full_name)
        finally:
            if os.path.exists(temp_file_name):
                os.remove(temp_file_name)

    def validate_save_configuration(self) -> None:
        """Check transformations, callback and staging directory ahead of any file I/O."""
        transformed = [t for t in self.ensure_transformations() if not t.is_verbatim]
        if transformed:
            self.validate_transform_settings(transformed)
            self.resolve_transform_temp_path()

    def validate_transform_settings(self, transformations: List[Transformation]) -> None:
        if self.transform_callback is None:
            names = ", ".join(t.name for t in transformations)
            raise ConfigurationError(f"{type(self).__name__} requires a transform callback for: {names}")

    def should_persist(self, result: bool) -> bool:
        # Keep version and extension pointing at whatever variants were stored.
        return any(self.last_save_results.values())

    def resolve_transform_temp_path(self) -> str:
        """Return the staging directory for transformed files, creating it if needed."""
        base_path = self.temp_path or get_config().temp_path
        path = Path(base_path) / type(self).__name__ / base_type_name(self.record)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Unable to resolve temporary file path: '{path}': {e}") from e
        if not path.is_dir():
            raise ConfigurationError(f"Unable to resolve temporary file path: '{path}'!")
        if not os.access(path, os.W_OK):
            raise ConfigurationError(f"Path: '{path}' should be writeable!")
        return str(path)

    def transform_file(self, source_path: str, destination_path: str, settings: Any) -> bool:
        """Write the transformed source file to *destination_path*."""
        if self.transform_callback is None:
            raise ConfigurationError(f"{type(self).__name__} requires a transform callback.")
        return bool(self.transform_callback(source_path, destination_path, settings))

    def delete_file(self) -> bool:
        """Remove the files of every transformation, attempting all of them."""
        transformations = self.ensure_transformations()
        bucket = self.ensure_file_storage_bucket()
        result = True
        for transformation in transformations:
            file_name = self.get_file_full_name(transformation.name)
            try:
                if bucket.exists(file_name):
                    result = bucket.delete(file_name) and result
            except StorageError as e:
                logger.error(f"Unable to delete transformation '{transformation.name}' file {file_name}: {e}")
                result = False
        return result

    def regenerate_file_transformations(self, source_transformation: Optional[str] = None) -> bool:
        """Rebuild every transformation from one stored transformation file.

        The version is bumped like for any other save.
        """
        self.validate_save_configuration()
        source_transformation = self.fetch_transformation_name(source_transformation)
        file_full_name = self.get_file_full_name(source_transformation)
        extension = self.namer.current_extension()
        temp_file_name = os.path.join(
            self.resolve_transform_temp_path(),
            f"{uuid.uuid4().hex}_{self.namer.base_name()}.{extension}",
        )
        bucket = self.ensure_file_storage_bucket()
        try:
            if not bucket.copy_out(file_full_name, temp_file_name):
                return False
            return self.save_file(temp_file_name, delete_source=True)
        finally:
            if os.path.exists(temp_file_name):
                os.remove(temp_file_name)

    # ---------- file shortcuts ---------- #
    def file_exists(self, transformation: Optional[str] = None) -> bool:
        return self.ensure_file_storage_bucket().exists(self.get_file_full_name(transformation))

    def get_file_content(self, transformation: Optional[str] = None) -> bytes:
        return self.ensure_file_storage_bucket().read(self.get_file_full_name(transformation))

    def open_file(self, mode: str = "r", transformation: Optional[str] = None) -> IO:
        return self.ensure_file_storage_bucket().open(self.get_file_full_name(transformation), mode)

    def get_file_url(self, transformation: Optional[str] = None) -> str:
        bucket = self.ensure_file_storage_bucket()
        file_full_name = self.get_file_full_name(transformation)
        default_file_url = self.get_default_file_url(transformation)
        if default_file_url:
            if not bucket.exists(file_full_name):
                return default_file_url
        return bucket.url(file_full_name, expires=get_config().file_url_expires)
