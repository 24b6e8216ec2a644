"""Pull parser over decoded documents plus the parse-time helpers objects use."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, TypeVar

from roundtrip_harness.diagnostics import DeprecationLogger
from roundtrip_harness.errors import DocumentParseError

if TYPE_CHECKING:
    from roundtrip_harness.document.formats import DocumentTree
    from roundtrip_harness.wire import TypeRegistry

T = TypeVar("T")

# The outer START_OBJECT always precedes the root FIELD_NAME.
MIN_ROOT_SKIP_TOKENS: Final[int] = 2

_DEPRECATION_LOGGER = DeprecationLogger("parse_field")


class Token(StrEnum):
    START_OBJECT = "start_object"
    END_OBJECT = "end_object"
    START_ARRAY = "start_array"
    END_ARRAY = "end_array"
    FIELD_NAME = "field_name"
    VALUE_STRING = "value_string"
    VALUE_NUMBER = "value_number"
    VALUE_BOOLEAN = "value_boolean"
    VALUE_NULL = "value_null"

    @property
    def is_value(self) -> bool:
        return self in _VALUE_TOKENS


_VALUE_TOKENS = frozenset(
    {Token.VALUE_STRING, Token.VALUE_NUMBER, Token.VALUE_BOOLEAN, Token.VALUE_NULL}
)


@dataclass(frozen=True, slots=True)
class _Event:
    token: Token
    name: str | None
    value: object = None


class DocumentParser:
    """Token-at-a-time view of a document tree.

    ``current_name()`` returns the field name for ``FIELD_NAME`` tokens and for
    the value (or container) that follows one; array elements report the name
    of the enclosing array field.
    """

    def __init__(self, tree: Mapping[str, object]) -> None:
        events: list[_Event] = []
        _flatten(tree, None, events)
        self._events = tuple(events)
        self._index = -1

    @property
    def current_token(self) -> Token | None:
        if 0 <= self._index < len(self._events):
            return self._events[self._index].token
        return None

    @property
    def location(self) -> str:
        return f"token {self._index}"

    def next_token(self) -> Token | None:
        if self._index < len(self._events):
            self._index += 1
        return self.current_token

    def current_name(self) -> str | None:
        event = self._current_event()
        return event.name if event is not None else None

    def expect(self, token: Token) -> None:
        current = self.current_token
        if current is not token:
            found = current.value if current is not None else "end of document"
            raise DocumentParseError(
                f"{self.location}: expected [{token.value}] but found [{found}]"
            )

    def text(self) -> str:
        event = self._require_value()
        if event.token is not Token.VALUE_STRING:
            raise DocumentParseError(
                f"{self.location}: field [{event.name}] expected a string, "
                f"got [{event.token.value}]"
            )
        return str(event.value)

    def text_or_none(self) -> str | None:
        if self.current_token is Token.VALUE_NULL:
            return None
        return self.text()

    def double_value(self) -> float:
        event = self._require_value()
        if event.token is Token.VALUE_NUMBER:
            return float(event.value)  # type: ignore[arg-type]
        if event.token is Token.VALUE_STRING:
            try:
                return float(str(event.value))
            except ValueError as exc:
                raise DocumentParseError(
                    f"{self.location}: field [{event.name}] is not a number: {event.value!r}"
                ) from exc
        raise DocumentParseError(
            f"{self.location}: field [{event.name}] expected a number, got [{event.token.value}]"
        )

    def int_value(self) -> int:
        event = self._require_value()
        value = event.value
        if event.token is Token.VALUE_NUMBER:
            if isinstance(value, int):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
        raise DocumentParseError(
            f"{self.location}: field [{event.name}] expected an integer, got {value!r}"
        )

    def boolean_value(self) -> bool:
        event = self._require_value()
        if event.token is not Token.VALUE_BOOLEAN:
            raise DocumentParseError(
                f"{self.location}: field [{event.name}] expected a boolean, "
                f"got [{event.token.value}]"
            )
        return bool(event.value)

    def object_value(self) -> Any:
        """Raw scalar value of the current value token."""

        return self._require_value().value

    def text_list(self) -> list[str]:
        """Read an array of strings; the parser ends positioned on ``END_ARRAY``."""

        self.expect(Token.START_ARRAY)
        values: list[str] = []
        while self.next_token() is not Token.END_ARRAY:
            if self.current_token is None:
                raise DocumentParseError(f"{self.location}: unterminated array")
            values.append(self.text())
        return values

    def skip_children(self) -> None:
        token = self.current_token
        if token not in (Token.START_OBJECT, Token.START_ARRAY):
            return
        depth = 1
        while depth:
            token = self.next_token()
            if token is None:
                raise DocumentParseError(f"{self.location}: unterminated container")
            if token in (Token.START_OBJECT, Token.START_ARRAY):
                depth += 1
            elif token in (Token.END_OBJECT, Token.END_ARRAY):
                depth -= 1

    def _current_event(self) -> _Event | None:
        if 0 <= self._index < len(self._events):
            return self._events[self._index]
        return None

    def _require_value(self) -> _Event:
        event = self._current_event()
        if event is None or not event.token.is_value:
            found = event.token.value if event is not None else "end of document"
            raise DocumentParseError(f"{self.location}: expected a value but found [{found}]")
        return event


def _flatten(value: object, name: str | None, events: list[_Event]) -> None:
    if isinstance(value, Mapping):
        events.append(_Event(Token.START_OBJECT, name))
        for key, item in value.items():
            events.append(_Event(Token.FIELD_NAME, str(key)))
            _flatten(item, str(key), events)
        events.append(_Event(Token.END_OBJECT, name))
    elif isinstance(value, (list, tuple)):
        events.append(_Event(Token.START_ARRAY, name))
        for item in value:
            _flatten(item, name, events)
        events.append(_Event(Token.END_ARRAY, name))
    elif value is None:
        events.append(_Event(Token.VALUE_NULL, name))
    elif isinstance(value, bool):
        events.append(_Event(Token.VALUE_BOOLEAN, name, value))
    elif isinstance(value, (int, float)):
        events.append(_Event(Token.VALUE_NUMBER, name, value))
    elif isinstance(value, str):
        events.append(_Event(Token.VALUE_STRING, name, value))
    else:
        raise DocumentParseError(f"unsupported document value of type {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class ParseField:
    """Field name with optional deprecated aliases."""

    name: str
    deprecated_names: tuple[str, ...] = ()

    def match(
        self,
        field_name: str | None,
        *,
        strict: bool = True,
        deprecation_logger: DeprecationLogger | None = None,
    ) -> bool:
        if field_name is None:
            return False
        if field_name == self.name:
            return True
        if field_name not in self.deprecated_names:
            return False

        message = f"Deprecated field [{field_name}] used, expected [{self.name}] instead"
        if strict:
            raise DocumentParseError(message)
        (deprecation_logger or _DEPRECATION_LOGGER).deprecated(message)
        return True

    def __str__(self) -> str:
        return self.name


@dataclass(slots=True)
class ParseContext:
    """Parser plus the registry and matching mode nested objects are parsed with."""

    parser: DocumentParser
    registry: TypeRegistry | None = None
    strict: bool = True
    deprecation_logger: DeprecationLogger = field(default=_DEPRECATION_LOGGER)

    def match(self, parse_field: ParseField, field_name: str | None) -> bool:
        return parse_field.match(
            field_name, strict=self.strict, deprecation_logger=self.deprecation_logger
        )

    def parse_inner(self, category: type[T]) -> T:
        """Parse a ``{"<name>": {...}}`` wrapper through the registry.

        The parser must be positioned on the wrapper's ``START_OBJECT``; it is left
        on the wrapper's ``END_OBJECT``.
        """

        if self.registry is None:
            raise DocumentParseError(f"no registry available to parse a nested {category.__name__}")
        parser = self.parser
        parser.expect(Token.START_OBJECT)
        parser.next_token()
        parser.expect(Token.FIELD_NAME)
        name = parser.current_name()
        assert name is not None
        parse_function = self.registry.get_parser(category, name)
        parser.next_token()
        parser.expect(Token.START_OBJECT)
        parsed = parse_function(self)
        parser.expect(Token.END_OBJECT)
        parser.next_token()
        if parser.current_token is not Token.END_OBJECT:
            raise DocumentParseError(
                f"{parser.location}: [{name}] malformed {category.__name__}, "
                "expected a single entry in the enclosing object"
            )
        if not isinstance(parsed, category):
            raise DocumentParseError(f"[{name}] parser returned {type(parsed).__name__}")
        return parsed


def skip_to_root(parser: DocumentParser, skip_tokens: int = MIN_ROOT_SKIP_TOKENS) -> str:
    """Advance to the named root element and return its name.

    Advances ``skip_tokens`` tokens, the last of which must be the root
    ``FIELD_NAME`` (two for the usual ``{"<root>": {...}}`` shape, since the
    outer ``START_OBJECT`` always comes first), reads the root name, and moves
    onto the root's value.
    """

    if skip_tokens < MIN_ROOT_SKIP_TOKENS:
        raise ValueError(f"skip_tokens must be >= {MIN_ROOT_SKIP_TOKENS}")
    for _ in range(skip_tokens):
        parser.next_token()
    parser.expect(Token.FIELD_NAME)
    root_name = parser.current_name()
    assert root_name is not None
    parser.next_token()
    return root_name


__all__ = [
    "MIN_ROOT_SKIP_TOKENS",
    "DocumentParser",
    "ParseContext",
    "ParseField",
    "Token",
    "skip_to_root",
]
