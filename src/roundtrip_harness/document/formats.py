"""Structured documents: an ordered key/value tree rendered in a concrete format."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import TYPE_CHECKING, Final, NoReturn

import msgspec
import yaml

from roundtrip_harness.errors import DocumentParseError

if TYPE_CHECKING:
    from roundtrip_harness.document.parser import DocumentParser

DocumentScalar = str | int | float | bool | None
DocumentValue = DocumentScalar | list["DocumentValue"] | dict[str, "DocumentValue"]
DocumentTree = dict[str, DocumentValue]

_MAX_DEPTH: Final[int] = 64
_YAML_LINE_WIDTH: Final[int] = 1 << 16


class DocumentFormat(StrEnum):
    """Concrete renderings a document can take."""

    JSON = "json"
    YAML = "yaml"
    MSGPACK = "msgpack"

    @property
    def is_binary(self) -> bool:
        return self is DocumentFormat.MSGPACK


@dataclass(frozen=True, slots=True)
class Document:
    """Rendered document bytes together with the format that produced them."""

    format: DocumentFormat
    payload: bytes
    pretty: bool = False

    def tree(self) -> DocumentTree:
        return decode_payload(self.payload, self.format)

    def parser(self) -> DocumentParser:
        from roundtrip_harness.document.parser import DocumentParser

        return DocumentParser(self.tree())

    def text(self) -> str:
        if self.format.is_binary:
            raise ValueError(f"{self.format.value} documents have no text form")
        return self.payload.decode("utf-8")


def encode_tree(
    tree: Mapping[str, object],
    document_format: DocumentFormat,
    *,
    pretty: bool = False,
) -> bytes:
    """Render ``tree`` in ``document_format``. Key order is preserved in every format."""

    fmt = DocumentFormat(document_format)
    normalized = _normalize_value(tree, "$", depth=0)
    if not isinstance(normalized, dict):
        _fail("$", "document root must be an object")

    if fmt is DocumentFormat.JSON:
        if pretty:
            text = json.dumps(normalized, indent=2, ensure_ascii=False, allow_nan=False)
        else:
            text = json.dumps(
                normalized, separators=(",", ":"), ensure_ascii=False, allow_nan=False
            )
        return text.encode("utf-8")
    if fmt is DocumentFormat.YAML:
        text = yaml.safe_dump(
            normalized,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=not pretty,
            width=_YAML_LINE_WIDTH,
        )
        return text.encode("utf-8")
    # msgpack has no whitespace to pretty-print.
    return msgspec.msgpack.encode(normalized)


def decode_payload(payload: bytes, document_format: DocumentFormat) -> DocumentTree:
    """Decode rendered bytes back into an ordered tree."""

    fmt = DocumentFormat(document_format)
    try:
        if fmt is DocumentFormat.JSON:
            parsed = json.loads(payload.decode("utf-8"))
        elif fmt is DocumentFormat.YAML:
            parsed = yaml.safe_load(payload.decode("utf-8"))
        else:
            parsed = msgspec.msgpack.decode(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DocumentParseError(f"invalid {fmt.value} document: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DocumentParseError(f"invalid {fmt.value} document: {exc}") from exc
    except msgspec.DecodeError as exc:
        raise DocumentParseError(f"invalid {fmt.value} document: {exc}") from exc

    if not isinstance(parsed, dict):
        raise DocumentParseError(
            f"{fmt.value} document root must be an object, got {type(parsed).__name__}"
        )
    return parsed


class DocumentBuilder:
    """Incremental writer for ordered documents.

    Objects write themselves through ``start_object``/``field``/``end_object``
    calls in the order their fields should appear. ``field`` accepts scalars,
    sequences, mappings, and any object with a ``to_document(builder)`` method,
    which is written in place as the field's value.
    """

    def __init__(
        self,
        document_format: DocumentFormat | str = DocumentFormat.JSON,
        *,
        pretty: bool = False,
    ) -> None:
        self._format = DocumentFormat(document_format)
        self._pretty = pretty
        self._root: DocumentTree | None = None
        self._stack: list[dict[str, DocumentValue] | list[DocumentValue]] = []
        self._pending_name: str | None = None

    @property
    def format(self) -> DocumentFormat:
        return self._format

    @property
    def pretty(self) -> bool:
        return self._pretty

    def pretty_print(self) -> DocumentBuilder:
        self._pretty = True
        return self

    def start_object(self, name: str | None = None) -> DocumentBuilder:
        self._attach({}, name)
        return self

    def end_object(self) -> DocumentBuilder:
        self._close(dict, "end_object")
        return self

    def start_array(self, name: str | None = None) -> DocumentBuilder:
        self._attach([], name)
        return self

    def end_array(self) -> DocumentBuilder:
        self._close(list, "end_array")
        return self

    def field_name(self, name: str) -> DocumentBuilder:
        """Name the next value written into the current object."""

        self._require_object("field_name")
        if self._pending_name is not None:
            _fail(self._path(), f"field [{self._pending_name}] has no value")
        self._pending_name = _as_field_name(name, self._path())
        return self

    def field(self, name: str, value: object) -> DocumentBuilder:
        self._require_object("field")
        field_name = _as_field_name(name, self._path())
        writer = getattr(value, "to_document", None)
        if callable(writer):
            self.field_name(field_name)
            depth = len(self._stack)
            writer(self)
            if self._pending_name is not None or len(self._stack) != depth:
                _fail(f"{self._path()}.{field_name}", "nested writer left the document unbalanced")
            return self

        parent = self._stack[-1]
        assert isinstance(parent, dict)
        if field_name in parent:
            _fail(self._path(), f"duplicate field [{field_name}]")
        parent[field_name] = _normalize_value(value, f"{self._path()}.{field_name}", depth=0)
        return self

    def value(self, value: object) -> DocumentBuilder:
        if not self._stack:
            _fail("$", "value() requires an open array or a pending field name")
        parent = self._stack[-1]
        normalized = _normalize_value(value, self._path(), depth=0)
        if isinstance(parent, list):
            parent.append(normalized)
            return self
        key = self._take_name(None)
        if key in parent:
            _fail(self._path(), f"duplicate field [{key}]")
        parent[key] = normalized
        return self

    def tree(self) -> DocumentTree:
        if self._stack or self._root is None:
            _fail(self._path(), "document is incomplete")
        return self._root

    def build(self) -> Document:
        return Document(
            format=self._format,
            payload=encode_tree(self.tree(), self._format, pretty=self._pretty),
            pretty=self._pretty,
        )

    def _attach(
        self,
        container: dict[str, DocumentValue] | list[DocumentValue],
        name: str | None,
    ) -> None:
        if not self._stack:
            if self._root is not None:
                _fail("$", "document already has a root object")
            if not isinstance(container, dict):
                _fail("$", "document root must be an object")
            if name is not None:
                _fail("$", "root object cannot be named")
            self._root = container
        else:
            parent = self._stack[-1]
            if isinstance(parent, dict):
                key = self._take_name(name)
                if key in parent:
                    _fail(self._path(), f"duplicate field [{key}]")
                parent[key] = container
            else:
                if name is not None:
                    _fail(self._path(), "array elements cannot be named")
                parent.append(container)
        self._stack.append(container)

    def _close(self, kind: type, operation: str) -> None:
        if not self._stack or not isinstance(self._stack[-1], kind):
            _fail(self._path(), f"{operation}() does not match the open container")
        if self._pending_name is not None:
            _fail(self._path(), f"field [{self._pending_name}] has no value")
        self._stack.pop()

    def _take_name(self, name: str | None) -> str:
        key = name if name is not None else self._pending_name
        self._pending_name = None
        if key is None:
            _fail(self._path(), "object members require a field name")
        return _as_field_name(key, self._path())

    def _require_object(self, operation: str) -> None:
        if not self._stack or not isinstance(self._stack[-1], dict):
            _fail(self._path(), f"{operation}() requires an open object")

    def _path(self) -> str:
        return f"$[depth={len(self._stack)}]"


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _as_field_name(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"field names must be strings, got {type(value).__name__}")
    if not value:
        _fail(path, "field names must not be empty")
    return str(value)


def _normalize_value(value: object, path: str, *, depth: int) -> DocumentValue:
    if depth > _MAX_DEPTH:
        _fail(path, f"document nesting exceeds max depth {_MAX_DEPTH}")

    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return str(value)
    if isinstance(value, Enum):
        return _normalize_value(value.value, path, depth=depth)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            _fail(path, "float values must be finite")
        return float(value)
    if isinstance(value, (list, tuple)):
        return [
            _normalize_value(item, f"{path}[{index}]", depth=depth + 1)
            for index, item in enumerate(value)
        ]
    if isinstance(value, Mapping):
        out: dict[str, DocumentValue] = {}
        for key, item in value.items():
            out[_as_field_name(key, path)] = _normalize_value(
                item, f"{path}.{key}", depth=depth + 1
            )
        return out

    _fail(path, f"value is not document-serializable ({type(value).__name__})")


__all__ = [
    "Document",
    "DocumentBuilder",
    "DocumentFormat",
    "DocumentScalar",
    "DocumentTree",
    "DocumentValue",
    "decode_payload",
    "encode_tree",
]
