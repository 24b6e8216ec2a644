"""Filter sub-objects that sort families embed, and a random provider for them.

Every filter is a full specification object: it renders as
``{"<name>": {...}}``, writes itself to the wire, and compares by value. The
three variants are registered under the ``FilterSpec`` category in every suite
registry so enclosing objects can read them back by discriminator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, ClassVar, Final

from roundtrip_harness.document.parser import ParseField, Token
from roundtrip_harness.errors import DocumentParseError, InternalSelectionError
from roundtrip_harness.wire import FamilyEntry, to_float32

if TYPE_CHECKING:
    from roundtrip_harness.document.formats import DocumentBuilder
    from roundtrip_harness.document.parser import ParseContext
    from roundtrip_harness.randomness import RandomSource
    from roundtrip_harness.wire import StreamInput, StreamOutput

DEFAULT_BOOST: Final[float] = 1.0

BOOST_FIELD = ParseField("boost")
IDS_TYPE_FIELD = ParseField("type", deprecated_names=("types", "_type"))
IDS_VALUES_FIELD = ParseField("values")
TERM_VALUE_FIELD = ParseField("value")


class FilterSpec(ABC):
    """Category type for filter specification objects."""

    __slots__ = ()

    NAME: ClassVar[str]

    @property
    def writeable_name(self) -> str:
        return self.NAME

    @abstractmethod
    def write_to(self, out: StreamOutput) -> None: ...

    def to_document(self, builder: DocumentBuilder) -> None:
        builder.start_object()
        builder.start_object(self.NAME)
        self._write_body(builder)
        builder.end_object()
        builder.end_object()

    @abstractmethod
    def _write_body(self, builder: DocumentBuilder) -> None: ...


@dataclass(frozen=True, slots=True)
class MatchAllFilter(FilterSpec):
    NAME: ClassVar[str] = "match_all"

    boost: float = DEFAULT_BOOST

    def __post_init__(self) -> None:
        object.__setattr__(self, "boost", to_float32(self.boost))

    def write_to(self, out: StreamOutput) -> None:
        out.write_float(self.boost)

    def _write_body(self, builder: DocumentBuilder) -> None:
        builder.field(BOOST_FIELD.name, self.boost)

    @classmethod
    def read_from(cls, stream: StreamInput) -> MatchAllFilter:
        return cls(boost=stream.read_float())

    @classmethod
    def from_document(cls, context: ParseContext) -> MatchAllFilter:
        parser = context.parser
        boost = DEFAULT_BOOST
        current_name: str | None = None
        while parser.next_token() is not Token.END_OBJECT:
            token = parser.current_token
            if token is Token.FIELD_NAME:
                current_name = parser.current_name()
            elif token is not None and token.is_value and context.match(BOOST_FIELD, current_name):
                boost = parser.double_value()
            else:
                raise _unknown_field(cls.NAME, current_name, parser.location)
        return cls(boost=boost)


@dataclass(frozen=True, slots=True)
class IdsFilter(FilterSpec):
    NAME: ClassVar[str] = "ids"

    types: tuple[str, ...] = ()
    ids: tuple[str, ...] = ()
    boost: float = DEFAULT_BOOST

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", tuple(self.types))
        object.__setattr__(self, "ids", tuple(self.ids))
        object.__setattr__(self, "boost", to_float32(self.boost))

    def write_to(self, out: StreamOutput) -> None:
        out.write_string_array(self.types)
        out.write_string_array(self.ids)
        out.write_float(self.boost)

    def _write_body(self, builder: DocumentBuilder) -> None:
        builder.field(IDS_TYPE_FIELD.name, list(self.types))
        builder.field(IDS_VALUES_FIELD.name, list(self.ids))
        builder.field(BOOST_FIELD.name, self.boost)

    @classmethod
    def read_from(cls, stream: StreamInput) -> IdsFilter:
        types = stream.read_string_array()
        ids = stream.read_string_array()
        return cls(types=types, ids=ids, boost=stream.read_float())

    @classmethod
    def from_document(cls, context: ParseContext) -> IdsFilter:
        parser = context.parser
        types: tuple[str, ...] = ()
        ids: tuple[str, ...] = ()
        boost = DEFAULT_BOOST
        current_name: str | None = None
        while parser.next_token() is not Token.END_OBJECT:
            token = parser.current_token
            if token is Token.FIELD_NAME:
                current_name = parser.current_name()
            elif token is Token.START_ARRAY and context.match(IDS_TYPE_FIELD, current_name):
                types = tuple(parser.text_list())
            elif token is Token.START_ARRAY and context.match(IDS_VALUES_FIELD, current_name):
                ids = tuple(parser.text_list())
            elif token is not None and token.is_value and context.match(BOOST_FIELD, current_name):
                boost = parser.double_value()
            else:
                raise _unknown_field(cls.NAME, current_name, parser.location)
        return cls(types=types, ids=ids, boost=boost)


@dataclass(frozen=True, slots=True)
class TermFilter(FilterSpec):
    NAME: ClassVar[str] = "term"

    field: str
    value: float
    boost: float = DEFAULT_BOOST

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field:
            raise ValueError("term.field: must be a non-empty string")
        object.__setattr__(self, "boost", to_float32(self.boost))

    def write_to(self, out: StreamOutput) -> None:
        out.write_string(self.field)
        out.write_double(self.value)
        out.write_float(self.boost)

    def _write_body(self, builder: DocumentBuilder) -> None:
        builder.start_object(self.field)
        builder.field(TERM_VALUE_FIELD.name, self.value)
        builder.field(BOOST_FIELD.name, self.boost)
        builder.end_object()

    @classmethod
    def read_from(cls, stream: StreamInput) -> TermFilter:
        field = stream.read_string()
        value = stream.read_double()
        return cls(field=field, value=value, boost=stream.read_float())

    @classmethod
    def from_document(cls, context: ParseContext) -> TermFilter:
        """Parse ``{"<field>": {"value": v, "boost": b}}`` or the short ``{"<field>": v}``."""

        parser = context.parser
        parser.next_token()
        parser.expect(Token.FIELD_NAME)
        field = parser.current_name()
        assert field is not None
        value: float | None = None
        boost = DEFAULT_BOOST

        token = parser.next_token()
        if token is Token.START_OBJECT:
            current_name: str | None = None
            while parser.next_token() is not Token.END_OBJECT:
                token = parser.current_token
                if token is Token.FIELD_NAME:
                    current_name = parser.current_name()
                elif token is not None and token.is_value:
                    if context.match(TERM_VALUE_FIELD, current_name):
                        value = parser.double_value()
                    elif context.match(BOOST_FIELD, current_name):
                        boost = parser.double_value()
                    else:
                        raise _unknown_field(cls.NAME, current_name, parser.location)
                else:
                    raise _unknown_field(cls.NAME, current_name, parser.location)
        elif token is not None and token.is_value:
            value = parser.double_value()
        else:
            raise DocumentParseError(f"{parser.location}: [{cls.NAME}] malformed query")

        if value is None:
            raise DocumentParseError(f"{parser.location}: [{cls.NAME}] requires a value")
        parser.next_token()
        if parser.current_token is not Token.END_OBJECT:
            raise DocumentParseError(
                f"{parser.location}: [{cls.NAME}] query does not support multiple fields"
            )
        return cls(field=field, value=value, boost=boost)


class NestedFilterVariant(IntEnum):
    MATCH_ALL = 0
    IDS = 1
    TERM = 2


def _random_match_all(rng: RandomSource) -> FilterSpec:
    return MatchAllFilter(boost=rng.random_float())


def _random_ids(rng: RandomSource) -> FilterSpec:
    types = tuple(
        rng.random_ascii_of_length_between(1, 10) for _ in range(rng.random_int_between(0, 3))
    )
    ids = tuple(
        rng.random_ascii_of_length_between(1, 10) for _ in range(rng.random_int_between(0, 5))
    )
    return IdsFilter(types=types, ids=ids, boost=rng.random_float())


def _random_term(rng: RandomSource) -> FilterSpec:
    return TermFilter(
        field=rng.random_ascii_of_length_between(1, 10),
        value=rng.random_double(),
        boost=rng.random_float(),
    )


_VARIANT_FACTORIES: Final[Mapping[NestedFilterVariant, Callable[[RandomSource], FilterSpec]]] = {
    NestedFilterVariant.MATCH_ALL: _random_match_all,
    NestedFilterVariant.IDS: _random_ids,
    NestedFilterVariant.TERM: _random_term,
}


def nested_filter_for(index: int, rng: RandomSource) -> FilterSpec:
    """Build the variant at ``index`` of the fixed menu."""

    try:
        variant = NestedFilterVariant(index)
    except ValueError as exc:
        raise InternalSelectionError(
            f"Only {len(NestedFilterVariant)} filter variants supported, got index {index}"
        ) from exc
    return _VARIANT_FACTORIES[variant](rng)


def random_nested_filter(rng: RandomSource) -> FilterSpec:
    """Uniformly pick a variant and populate it with a random boost."""

    return nested_filter_for(rng.random_int_between(0, len(NestedFilterVariant) - 1), rng)


def filter_families() -> tuple[FamilyEntry, ...]:
    return tuple(
        FamilyEntry(FilterSpec, filter_type.NAME, filter_type.read_from, filter_type.from_document)
        for filter_type in (MatchAllFilter, IdsFilter, TermFilter)
    )


def _unknown_field(name: str, field_name: str | None, location: str) -> DocumentParseError:
    return DocumentParseError(f"{location}: [{name}] query does not support [{field_name}]")


__all__ = [
    "DEFAULT_BOOST",
    "FilterSpec",
    "IdsFilter",
    "MatchAllFilter",
    "NestedFilterVariant",
    "TermFilter",
    "filter_families",
    "nested_filter_for",
    "random_nested_filter",
]
