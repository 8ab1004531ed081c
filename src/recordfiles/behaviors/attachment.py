import logging
from typing import Any, Optional, Type

from sqlalchemy import event

from src.recordfiles.db.record import SqlAlchemyRecord

from .file import FileBehavior

logger = logging.getLogger(__name__)


class FileAttachment:
    """Declares a file behavior on a mapped model class.

    Reading the attribute on an instance returns that instance's behavior.
    The behavior stores the attached upload after the instance is inserted or
    updated and removes its files before the instance is deleted.
    """

    def __init__(self, behavior_class: Type[FileBehavior] = FileBehavior, **options: Any):
        self.behavior_class = behavior_class
        self.options = options
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self._cache_key = f"_{name}_file_behavior"
        event.listen(owner, "after_insert", self._after_save, propagate=True)
        event.listen(owner, "after_update", self._after_save, propagate=True)
        event.listen(owner, "before_delete", self._before_delete, propagate=True)

    def __get__(self, instance: Any, owner: Optional[type] = None):
        if instance is None:
            return self
        behavior = instance.__dict__.get(self._cache_key)
        if behavior is None:
            behavior = self.behavior_class(SqlAlchemyRecord(instance), **self.options)
            instance.__dict__[self._cache_key] = behavior
        return behavior

    def _owns(self, target: Any) -> bool:
        # Subclasses may redeclare the attachment, only the closest one reacts.
        return getattr(type(target), self.name, None) is self

    def _after_save(self, mapper, connection, target) -> None:
        if not self._owns(target):
            return
        behavior = self.__get__(target)
        with behavior.record.bound_to(connection):
            behavior.after_save()

    def _before_delete(self, mapper, connection, target) -> None:
        if not self._owns(target):
            return
        behavior = self.__get__(target)
        logger.debug(f"Deleting files of {behavior.record.type_name} before record removal")
        with behavior.record.bound_to(connection):
            behavior.before_delete()
