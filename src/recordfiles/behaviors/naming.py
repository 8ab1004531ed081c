import posixpath
from typing import Callable, Mapping, Optional, Union

from src.recordfiles.records import Record

from .template import SubDirTemplate, compile_template, primary_key_string
from .version import VersionTracker

ExtensionRule = Union[str, Callable[[str], str]]
ExtensionRules = Union[None, Callable[[str, str], str], Mapping[str, ExtensionRule]]


class ExtensionResolver:
    """Maps the stored file extension onto the extension of one transformation.

    Rules are either a callable receiving ``(extension, transformation name)``
    or a mapping from transformation name to a literal extension or to a
    callable receiving ``(extension)``. Names without a rule keep the
    original extension.
    """

    def __init__(self, rules: ExtensionRules = None):
        self.rules = rules

    def resolve(self, extension: str, transformation: str) -> str:
        rules = self.rules
        if rules is None:
            return extension
        if callable(rules):
            return rules(extension, transformation)
        rule = rules.get(transformation)
        if rule is None:
            return extension
        if callable(rule):
            return rule(extension)
        return rule


class FileNamer:
    """Composes storage keys for the files of a record.

    Self name: ``{pk}[_{transformation}]_{version}.{extension}``, full name:
    the self name under the resolved sub-directory.
    """

    def __init__(
        self,
        record: Record,
        version_tracker: VersionTracker,
        subdir_template: Union[None, str, Callable, SubDirTemplate] = None,
        extension_attribute: str = "file_extension",
        file_attribute: str = "file",
        extension_rules: ExtensionRules = None,
    ):
        self.record = record
        self.version_tracker = version_tracker
        self.subdir_template = compile_template(subdir_template)
        self.extension_attribute = extension_attribute
        self.file_attribute = file_attribute
        self.extension_resolver = ExtensionResolver(extension_rules)

    def base_name(self) -> str:
        return primary_key_string(self.record)

    def current_extension(self) -> str:
        extension = self.record.get_attribute(self.extension_attribute)
        return "" if extension is None else str(extension)

    def subdir(self) -> str:
        return self.subdir_template.resolve(self.record, self.file_attribute)

    def self_name(
        self,
        transformation: Optional[str] = None,
        version: Optional[int] = None,
        extension: Optional[str] = None,
    ) -> str:
        if version is None:
            version = self.version_tracker.current()
        if extension is None:
            extension = self.current_extension()
        name = self.base_name()
        if transformation is not None:
            extension = self.extension_resolver.resolve(extension, transformation)
            name += "_" + transformation
        return f"{name}_{version}.{extension}"

    def full_name(
        self,
        transformation: Optional[str] = None,
        version: Optional[int] = None,
        extension: Optional[str] = None,
    ) -> str:
        file_name = self.self_name(transformation, version, extension)
        subdir = self.subdir()
        if subdir:
            # Storage keys always use forward slashes
            file_name = posixpath.join(subdir, file_name)
        return file_name
