"""Image files with resized variants.

:class:`ImageFileBehavior` is a :class:`TransformFileBehavior` whose
transformations default to resizing: settings are a ``(width, height)`` box
the image is fitted into, keeping its aspect ratio::

    image = FileAttachment(
        ImageFileBehavior,
        transformations=["origin", {"full": (800, 600), "thumbnail": (200, 150)}],
    )
"""

import logging
from typing import Any, List, Sequence

from PIL import Image

from src.recordfiles.exceptions import ConfigurationError

from .transform import TransformFileBehavior, Transformation

logger = logging.getLogger(__name__)

RGB_ONLY_FORMATS = {".jpg", ".jpeg"}


def validate_resize_settings(settings: Any) -> tuple[int, int]:
    if isinstance(settings, (str, bytes)) or not isinstance(settings, Sequence) or len(settings) != 2:
        raise ConfigurationError(f"Resize settings must be a (width, height) pair, got {settings!r}")
    width, height = settings
    if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
        raise ConfigurationError(f"Resize settings must be positive integers, got {settings!r}")
    return width, height


def resize_image(source_path: str, destination_path: str, settings: Any) -> bool:
    """Fit the source image into the `(width, height)` box of *settings*."""
    width, height = validate_resize_settings(settings)
    try:
        with Image.open(source_path) as image:
            image.thumbnail((width, height))
            if destination_path.lower().endswith(tuple(RGB_ONLY_FORMATS)) and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(destination_path)
    except (OSError, ValueError) as e:
        # ValueError: destination extension is not an image format
        logger.error(f"Unable to resize image {source_path}: {e}")
        return False
    return True


class ImageFileBehavior(TransformFileBehavior):
    """Resizes images unless a custom transform callback is configured."""

    def validate_transform_settings(self, transformations: List[Transformation]) -> None:
        if self.transform_callback is not None:
            return super().validate_transform_settings(transformations)
        for transformation in transformations:
            validate_resize_settings(transformation.settings)

    def transform_file(self, source_path: str, destination_path: str, settings: Any) -> bool:
        if self.transform_callback is None:
            return resize_image(source_path, destination_path, settings)
        return super().transform_file(source_path, destination_path, settings)
