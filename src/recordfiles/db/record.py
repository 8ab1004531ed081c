import logging
from contextlib import contextmanager
from typing import Any, Generator, Mapping, Optional

from sqlalchemy import Connection, and_, inspect, update
from sqlalchemy.orm import object_session
from sqlalchemy.orm.attributes import set_committed_value

from src.recordfiles.exceptions import UnknownAttributeError

logger = logging.getLogger(__name__)


class SqlAlchemyRecord:
    """Exposes a mapped instance through the record contract."""

    def __init__(self, instance: Any):
        self.instance = instance
        self._connection: Optional[Connection] = None

    @property
    def type_name(self) -> str:
        cls = type(self.instance)
        return f"{cls.__module__}.{cls.__qualname__}"

    @contextmanager
    def bound_to(self, connection: Connection) -> Generator["SqlAlchemyRecord", None, None]:
        """Route attribute updates through *connection*, as required inside flush events."""
        previous = self._connection
        self._connection = connection
        try:
            yield self
        finally:
            self._connection = previous

    def get_attribute(self, name: str) -> Any:
        try:
            return getattr(self.instance, name)
        except AttributeError:
            raise UnknownAttributeError(name) from None

    def get_primary_key(self) -> Any:
        mapper = inspect(type(self.instance))
        values = mapper.primary_key_from_instance(self.instance)
        if len(values) == 1:
            return values[0]
        return tuple(values)

    def update_attributes(self, values: Mapping[str, Any]) -> None:
        state = inspect(self.instance)
        connection = self._connection
        if connection is None and state.persistent:
            connection = object_session(self.instance).connection()

        if connection is None:
            # Transient or pending: the next flush writes the values.
            for key, value in values.items():
                setattr(self.instance, key, value)
            return

        mapper = state.mapper
        criteria = [
            column == value
            for column, value in zip(mapper.primary_key, mapper.primary_key_from_instance(self.instance))
        ]
        row_values = {mapper.get_property(key).columns[0]: value for key, value in values.items()}
        connection.execute(update(mapper.local_table).where(and_(*criteria)).values(row_values))
        for key, value in values.items():
            set_committed_value(self.instance, key, value)
        logger.debug(f"Updated {sorted(values)} on {self.type_name} {self.get_primary_key()}")

    def __repr__(self) -> str:
        return f"<SqlAlchemyRecord({self.instance!r})>"
