"""Sub-directory templates.

A template is resolved per record into the directory part of a storage key.
Placeholders are written in curly brackets:

- ``{pk}`` - primary key, composite keys joined with ``_``,
- ``{__model__}`` - fully-qualified record class name, dots replaced by ``_``,
- ``{__basemodel__}`` - record class name,
- ``{__modelid__}`` - record class name in kebab case,
- ``{__file__}`` - name of the behavior's file field,
- ``{name}`` - any record attribute; unknown names resolve to the name itself.

Leading carets pick a single symbol of the value: with pk 54321 ``{^pk}`` is
``5``, ``{^^pk}`` is ``4``; out of range positions give ``0``.
"""

import re
from typing import Any, Callable, Union

from src.recordfiles.exceptions import UnknownAttributeError
from src.recordfiles.records import Record, base_type_name

PLACEHOLDER = re.compile(r"{(\^*)(\w+)}")

TemplateValue = Union[None, str, Callable[[Any], str]]


def camel_to_id(name: str, separator: str = "-") -> str:
    """Convert a class name into an id: ``PostTag`` -> ``post-tag``."""
    result = re.sub(r"(?<![A-Z])[A-Z]", lambda match: separator + match.group(0), name)
    return result.strip(separator).lower()


def primary_key_string(record: Record) -> str:
    primary_key = record.get_primary_key()
    if isinstance(primary_key, (tuple, list)):
        return "_".join(_to_string(value) for value in primary_key)
    return _to_string(primary_key)


def _to_string(value: Any) -> str:
    return "" if value is None else str(value)


class SubDirTemplate:
    """Base of the template variants, dispatched once by :func:`compile_template`."""

    def resolve(self, record: Record, file_attribute: str = "file") -> str:
        raise NotImplementedError


class LiteralTemplate(SubDirTemplate):
    def __init__(self, text: str):
        self.text = text

    def resolve(self, record: Record, file_attribute: str = "file") -> str:
        return self.text

    def __repr__(self) -> str:
        return f"LiteralTemplate({self.text!r})"


class PlaceholderTemplate(SubDirTemplate):
    def __init__(self, text: str):
        self.text = text

    def resolve(self, record: Record, file_attribute: str = "file") -> str:
        return PLACEHOLDER.sub(
            lambda match: self._placeholder_value(match, record, file_attribute),
            self.text,
        )

    @staticmethod
    def _placeholder_value(match: re.Match, record: Record, file_attribute: str) -> str:
        position = len(match.group(1)) - 1
        name = match.group(2)

        if name == "pk":
            value = primary_key_string(record)
        elif name == "__model__":
            value = record.type_name.replace(".", "_")
        elif name == "__basemodel__":
            value = base_type_name(record)
        elif name == "__modelid__":
            value = camel_to_id(base_type_name(record))
        elif name == "__file__":
            value = file_attribute
        else:
            try:
                value = _to_string(record.get_attribute(name))
            except UnknownAttributeError:
                value = name

        if position >= 0:
            return value[position] if position < len(value) else "0"
        return value

    def __repr__(self) -> str:
        return f"PlaceholderTemplate({self.text!r})"


class ComputedTemplate(SubDirTemplate):
    """Delegates to a callable receiving the owning model instance."""

    def __init__(self, function: Callable[[Any], str]):
        self.function = function

    def resolve(self, record: Record, file_attribute: str = "file") -> str:
        return self.function(getattr(record, "instance", record))

    def __repr__(self) -> str:
        return f"ComputedTemplate({self.function!r})"


def compile_template(value: Union[TemplateValue, SubDirTemplate]) -> SubDirTemplate:
    if isinstance(value, SubDirTemplate):
        return value
    if callable(value):
        return ComputedTemplate(value)
    if not value:
        return LiteralTemplate("")
    if PLACEHOLDER.search(value):
        return PlaceholderTemplate(value)
    return LiteralTemplate(value)


def resolve_template(template: Union[TemplateValue, SubDirTemplate], record: Record, file_attribute: str = "file") -> str:
    return compile_template(template).resolve(record, file_attribute)
