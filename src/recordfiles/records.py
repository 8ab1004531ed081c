"""The record contract file behaviors are written against."""

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Record(Protocol):
    """A database record owning files.

    `type_name` is the dotted, fully-qualified name of the record type.
    """

    type_name: str

    def get_attribute(self, name: str) -> Any:
        """Return the attribute value, raise UnknownAttributeError if there is no such attribute."""
        ...

    def update_attributes(self, values: Mapping[str, Any]) -> None:
        """Persist *values* on the record straight away."""
        ...

    def get_primary_key(self) -> Any:
        """Return the primary key, a tuple for composite keys."""
        ...


def base_type_name(record: Record) -> str:
    return record.type_name.rsplit(".", 1)[-1]
