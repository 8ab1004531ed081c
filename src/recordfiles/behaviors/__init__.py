from .attachment import FileAttachment
from .file import FileBehavior
from .image import ImageFileBehavior, resize_image, validate_resize_settings
from .naming import ExtensionResolver, FileNamer
from .template import compile_template, resolve_template
from .transform import Transformation, TransformFileBehavior, parse_transformations
from .version import VersionTracker

__all__ = [
    "FileAttachment",
    "FileBehavior",
    "TransformFileBehavior",
    "ImageFileBehavior",
    "Transformation",
    "parse_transformations",
    "resize_image",
    "validate_resize_settings",
    "FileNamer",
    "ExtensionResolver",
    "VersionTracker",
    "compile_template",
    "resolve_template",
]
