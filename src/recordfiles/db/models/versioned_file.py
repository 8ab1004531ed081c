from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class VersionedFileMixin:
    """Columns tracking the file attached to a record.

    Matches the default `extension_attribute` / `version_attribute`
    of the file behaviors.
    """

    file_extension: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    file_version: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
