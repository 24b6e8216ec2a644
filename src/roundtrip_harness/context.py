"""Minimal execution context that specification objects compile against.

The context answers two questions only: the type of a field by name, and the
mapping of an object path. Both answers are memoised per context, so every call
within one trial sees the same descriptor instance.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final, NoReturn

from roundtrip_harness.randomness import RandomSource

FieldTypeResolver = Callable[[str], "FieldTypeDescriptor"]
ObjectResolver = Callable[[str], "ObjectDescriptor"]

_INDEX_NAME_MIN_LENGTH: Final[int] = 1
_INDEX_NAME_MAX_LENGTH: Final[int] = 10


class FieldKind(StrEnum):
    NUMERIC = "numeric"
    KEYWORD = "keyword"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"


class NumberType(StrEnum):
    DOUBLE = "double"
    FLOAT = "float"
    LONG = "long"
    INTEGER = "integer"

    @property
    def is_floating_point(self) -> bool:
        return self in (NumberType.DOUBLE, NumberType.FLOAT)


class DocValueFormat(StrEnum):
    """How a field's stored values are rendered back to callers."""

    RAW = "raw"
    BOOLEAN = "boolean"
    DATE_TIME = "date_time"


@dataclass(frozen=True, slots=True)
class FieldTypeDescriptor:
    name: str
    kind: FieldKind
    number_type: NumberType | None = None
    has_doc_values: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            _fail("field_type.name", "must be a non-empty string")
        object.__setattr__(self, "kind", FieldKind(self.kind))
        if self.kind is FieldKind.NUMERIC:
            if self.number_type is None:
                _fail("field_type.number_type", "numeric fields require a number type")
            object.__setattr__(self, "number_type", NumberType(self.number_type))
        elif self.number_type is not None:
            _fail("field_type.number_type", f"not allowed for {self.kind.value} fields")

    @property
    def is_numeric(self) -> bool:
        return self.kind is FieldKind.NUMERIC

    @property
    def doc_value_format(self) -> DocValueFormat:
        if self.kind is FieldKind.BOOLEAN:
            return DocValueFormat.BOOLEAN
        if self.kind is FieldKind.DATE:
            return DocValueFormat.DATE_TIME
        return DocValueFormat.RAW


@dataclass(frozen=True, slots=True)
class ObjectDescriptor:
    path: str
    nested: bool = False
    include_in_parent: bool = False
    include_in_root: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path:
            _fail("object.path", "must be a non-empty string")
        if not self.nested and (self.include_in_parent or self.include_in_root):
            _fail("object.nested", "include flags only apply to nested objects")


def default_field_type(name: str) -> FieldTypeDescriptor:
    """Every field resolves to a double with doc values unless a case overrides it."""

    return FieldTypeDescriptor(name, FieldKind.NUMERIC, NumberType.DOUBLE, has_doc_values=True)


def default_object_descriptor(path: str) -> ObjectDescriptor:
    return ObjectDescriptor(path, nested=False)


@dataclass(slots=True)
class ExecutionContext:
    """Resolver pair plus the identifying attributes compiled forms may read."""

    index_name: str
    now_in_millis: int
    field_type_resolver: FieldTypeResolver = default_field_type
    object_resolver: ObjectResolver = default_object_descriptor
    shard_id: int = 0
    _field_cache: dict[str, FieldTypeDescriptor] = field(default_factory=dict, repr=False)
    _object_cache: dict[str, ObjectDescriptor] = field(default_factory=dict, repr=False)

    def resolve_field(self, name: str) -> FieldTypeDescriptor:
        cached = self._field_cache.get(name)
        if cached is not None:
            return cached
        resolved = self.field_type_resolver(name)
        if not isinstance(resolved, FieldTypeDescriptor):
            raise TypeError(
                f"field type resolver returned {type(resolved).__name__} for [{name}]"
            )
        self._field_cache[name] = resolved
        return resolved

    def resolve_object(self, path: str) -> ObjectDescriptor:
        cached = self._object_cache.get(path)
        if cached is not None:
            return cached
        resolved = self.object_resolver(path)
        if not isinstance(resolved, ObjectDescriptor):
            raise TypeError(f"object resolver returned {type(resolved).__name__} for [{path}]")
        self._object_cache[path] = resolved
        return resolved


def build_mock_context(
    *,
    field_type_resolver: FieldTypeResolver | None = None,
    object_resolver: ObjectResolver | None = None,
    rng: RandomSource | None = None,
) -> ExecutionContext:
    """Build a context with a random index name and "now" timestamp. Performs no I/O."""

    if rng is None:
        rng = RandomSource()
    return ExecutionContext(
        index_name=rng.random_ascii_of_length_between(
            _INDEX_NAME_MIN_LENGTH, _INDEX_NAME_MAX_LENGTH
        ),
        now_in_millis=rng.random_positive_long(),
        field_type_resolver=field_type_resolver or default_field_type,
        object_resolver=object_resolver or default_object_descriptor,
    )


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


__all__ = [
    "DocValueFormat",
    "ExecutionContext",
    "FieldKind",
    "FieldTypeDescriptor",
    "FieldTypeResolver",
    "NumberType",
    "ObjectDescriptor",
    "ObjectResolver",
    "build_mock_context",
    "default_field_type",
    "default_object_descriptor",
]
