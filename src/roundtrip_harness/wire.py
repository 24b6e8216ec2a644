"""Binary wire codec and the registry that resolves type-tagged payloads.

Named objects are written as their discriminator string followed by their own
payload. Reading one back requires a ``TypeRegistry`` that maps
``(category, discriminator)`` to a reader.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, NoReturn, TypeVar

from roundtrip_harness.errors import UnknownTypeDiscriminator, WireFormatError

if TYPE_CHECKING:
    from roundtrip_harness.document.parser import ParseContext
    from roundtrip_harness.model import SpecificationObject

T = TypeVar("T")
TEnum = TypeVar("TEnum", bound=Enum)

WireReader = Callable[["StreamInput"], Any]
DocumentParseFunction = Callable[["ParseContext"], Any]

_MAX_VINT: Final[int] = (1 << 32) - 1
_MAX_VLONG: Final[int] = (1 << 63) - 1
_MAX_STRING_BYTES: Final[int] = 1 << 24

# Generic value type tags.
_GENERIC_NULL: Final[int] = -1
_GENERIC_STRING: Final[int] = 0
_GENERIC_LONG: Final[int] = 2
_GENERIC_DOUBLE: Final[int] = 4
_GENERIC_BOOLEAN: Final[int] = 5


class StreamOutput:
    """Append-only binary writer."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def bytes(self) -> bytes:
        return bytes(self._buffer)

    def write_byte(self, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"byte out of range: {value}")
        self._buffer.append(value)

    def write_bytes(self, value: bytes) -> None:
        self._buffer.extend(value)

    def write_bool(self, value: bool) -> None:
        self.write_byte(1 if value else 0)

    def write_int(self, value: int) -> None:
        self._buffer.extend(struct.pack(">i", value))

    def write_long(self, value: int) -> None:
        self._buffer.extend(struct.pack(">q", value))

    def write_vint(self, value: int) -> None:
        if not 0 <= value <= _MAX_VINT:
            raise ValueError(f"vint out of range: {value}")
        self._write_varint(value)

    def write_vlong(self, value: int) -> None:
        if not 0 <= value <= _MAX_VLONG:
            raise ValueError(f"vlong out of range: {value}")
        self._write_varint(value)

    def write_float(self, value: float) -> None:
        self._buffer.extend(struct.pack(">f", value))

    def write_double(self, value: float) -> None:
        self._buffer.extend(struct.pack(">d", value))

    def write_string(self, value: str) -> None:
        encoded = value.encode("utf-8")
        self.write_vint(len(encoded))
        self._buffer.extend(encoded)

    def write_optional_string(self, value: str | None) -> None:
        self.write_bool(value is not None)
        if value is not None:
            self.write_string(value)

    def write_string_array(self, values: Iterable[str]) -> None:
        items = tuple(values)
        self.write_vint(len(items))
        for item in items:
            self.write_string(item)

    def write_enum(self, value: Enum) -> None:
        self.write_vint(list(type(value)).index(value))

    def write_optional_enum(self, value: Enum | None) -> None:
        self.write_bool(value is not None)
        if value is not None:
            self.write_enum(value)

    def write_generic_value(self, value: object) -> None:
        """Write a tagged scalar: ``None``, ``str``, ``int``, ``float``, or ``bool``."""

        if value is None:
            self.write_byte(_GENERIC_NULL & 0xFF)
        elif isinstance(value, bool):
            self.write_byte(_GENERIC_BOOLEAN)
            self.write_bool(value)
        elif isinstance(value, str):
            self.write_byte(_GENERIC_STRING)
            self.write_string(value)
        elif isinstance(value, int):
            self.write_byte(_GENERIC_LONG)
            self.write_long(value)
        elif isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("generic double values must be finite")
            self.write_byte(_GENERIC_DOUBLE)
            self.write_double(value)
        else:
            raise ValueError(f"cannot write generic value of type {type(value).__name__}")

    def write_named_writeable(self, value: SpecificationObject) -> None:
        self.write_string(value.writeable_name)
        value.write_to(self)

    def write_optional_named_writeable(self, value: SpecificationObject | None) -> None:
        self.write_bool(value is not None)
        if value is not None:
            self.write_named_writeable(value)

    def _write_varint(self, value: int) -> None:
        while True:
            low = value & 0x7F
            value >>= 7
            if value:
                self._buffer.append(low | 0x80)
            else:
                self._buffer.append(low)
                return


class StreamInput:
    """Reader over bytes produced by ``StreamOutput``."""

    def __init__(self, data: bytes, registry: TypeRegistry | None = None) -> None:
        self._data = memoryview(bytes(data))
        self._offset = 0
        self._registry = registry

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    @property
    def registry(self) -> TypeRegistry | None:
        return self._registry

    def ensure_consumed(self) -> None:
        if self.remaining:
            raise WireFormatError(f"{self.remaining} unread byte(s) after payload")

    def read_byte(self) -> int:
        return self._take(1)[0]

    def read_bool(self) -> bool:
        value = self.read_byte()
        if value not in (0, 1):
            raise WireFormatError(f"invalid boolean byte {value} at offset {self._offset - 1}")
        return value == 1

    def read_int(self) -> int:
        value: int = struct.unpack(">i", self._take(4))[0]
        return value

    def read_long(self) -> int:
        value: int = struct.unpack(">q", self._take(8))[0]
        return value

    def read_vint(self) -> int:
        return self._read_varint(_MAX_VINT, "vint")

    def read_vlong(self) -> int:
        return self._read_varint(_MAX_VLONG, "vlong")

    def read_float(self) -> float:
        value: float = struct.unpack(">f", self._take(4))[0]
        return value

    def read_double(self) -> float:
        value: float = struct.unpack(">d", self._take(8))[0]
        return value

    def read_string(self) -> str:
        length = self.read_vint()
        if length > _MAX_STRING_BYTES:
            raise WireFormatError(f"string length {length} exceeds {_MAX_STRING_BYTES}")
        raw = self._take(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WireFormatError(f"invalid utf-8 string: {exc}") from exc

    def read_optional_string(self) -> str | None:
        return self.read_string() if self.read_bool() else None

    def read_string_array(self) -> tuple[str, ...]:
        return tuple(self.read_string() for _ in range(self.read_vint()))

    def read_enum(self, enum_type: type[TEnum]) -> TEnum:
        ordinal = self.read_vint()
        members = list(enum_type)
        if ordinal >= len(members):
            raise WireFormatError(f"unknown {enum_type.__name__} ordinal [{ordinal}]")
        return members[ordinal]

    def read_optional_enum(self, enum_type: type[TEnum]) -> TEnum | None:
        return self.read_enum(enum_type) if self.read_bool() else None

    def read_generic_value(self) -> object:
        tag = self.read_byte()
        if tag == _GENERIC_NULL & 0xFF:
            return None
        if tag == _GENERIC_BOOLEAN:
            return self.read_bool()
        if tag == _GENERIC_STRING:
            return self.read_string()
        if tag == _GENERIC_LONG:
            return self.read_long()
        if tag == _GENERIC_DOUBLE:
            return self.read_double()
        raise WireFormatError(f"unknown generic value type [{tag}]")

    def read_named_writeable(self, category: type[T]) -> T:
        registry = self._registry
        if registry is None:
            raise RuntimeError("stream was created without a type registry")
        name = self.read_string()
        value = registry.get_reader(category, name)(self)
        if not isinstance(value, category):
            raise WireFormatError(
                f"reader for {category.__name__} [{name}] returned {type(value).__name__}"
            )
        return value

    def read_optional_named_writeable(self, category: type[T]) -> T | None:
        return self.read_named_writeable(category) if self.read_bool() else None

    def _take(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._data):
            raise WireFormatError(
                f"truncated input: need {size} byte(s) at offset {self._offset}, "
                f"have {self.remaining}"
            )
        chunk = bytes(self._data[self._offset : end])
        self._offset = end
        return chunk

    def _read_varint(self, maximum: int, kind: str) -> int:
        result = 0
        shift = 0
        while True:
            byte = self.read_byte()
            result |= (byte & 0x7F) << shift
            if result > maximum:
                raise WireFormatError(f"{kind} overflow at offset {self._offset}")
            if not byte & 0x80:
                return result
            shift += 7


@dataclass(frozen=True, slots=True)
class FamilyEntry:
    """One registry row: how to read a discriminator from the wire and from documents."""

    category: type
    name: str
    reader: WireReader
    parser: DocumentParseFunction | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.category, type):
            _fail("category", "must be a class")
        if not isinstance(self.name, str) or not self.name.strip():
            _fail("name", "must be a non-empty string")
        if not callable(self.reader):
            _fail("reader", "must be callable")
        if self.parser is not None and not callable(self.parser):
            _fail("parser", "must be callable")


class TypeRegistry:
    """Catalog of ``(category, discriminator)`` readers; frozen once a suite starts."""

    def __init__(self, entries: Iterable[FamilyEntry] = ()) -> None:
        self._entries: dict[tuple[type, str], FamilyEntry] = {}
        self._frozen = False
        self.register_all(entries)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> TypeRegistry:
        self._frozen = True
        return self

    def register(self, entry: FamilyEntry) -> None:
        if self._frozen:
            raise RuntimeError("type registry is frozen")
        key = (entry.category, entry.name)
        if key in self._entries:
            _fail("name", f"{entry.category.__name__} [{entry.name}] is already registered")
        self._entries[key] = entry

    def register_all(self, entries: Iterable[FamilyEntry]) -> None:
        for entry in entries:
            self.register(entry)

    def contains(self, category: type, name: str) -> bool:
        return (category, name) in self._entries

    def get_entry(self, category: type, name: str) -> FamilyEntry:
        entry = self._entries.get((category, name))
        if entry is None:
            raise UnknownTypeDiscriminator(category.__name__, name, self.names(category))
        return entry

    def get_reader(self, category: type, name: str) -> WireReader:
        return self.get_entry(category, name).reader

    def get_parser(self, category: type, name: str) -> DocumentParseFunction:
        entry = self.get_entry(category, name)
        if entry.parser is None:
            raise UnknownTypeDiscriminator(
                category.__name__, name, self.names(category, parsable_only=True)
            )
        return entry.parser

    def names(self, category: type, *, parsable_only: bool = False) -> tuple[str, ...]:
        return tuple(
            sorted(
                name
                for (entry_category, name), entry in self._entries.items()
                if entry_category is category and (entry.parser is not None or not parsable_only)
            )
        )

    def entries(self) -> tuple[FamilyEntry, ...]:
        return tuple(
            self._entries[key]
            for key in sorted(self._entries, key=lambda item: (item[0].__qualname__, item[1]))
        )

    def __len__(self) -> int:
        return len(self._entries)


def copy_writeable(
    original: SpecificationObject, registry: TypeRegistry, reader: WireReader
) -> Any:
    """Serialize ``original`` and read it back with ``reader``."""

    out = StreamOutput()
    original.write_to(out)
    stream = StreamInput(out.bytes(), registry)
    copy = reader(stream)
    stream.ensure_consumed()
    return copy


def copy_named_writeable(original: T, registry: TypeRegistry, category: type[T]) -> T:
    """Serialize ``original`` with its discriminator and resolve it back through ``registry``."""

    out = StreamOutput()
    out.write_named_writeable(original)  # type: ignore[arg-type]
    stream = StreamInput(out.bytes(), registry)
    copy = stream.read_named_writeable(category)
    stream.ensure_consumed()
    return copy


def to_float32(value: float) -> float:
    """Narrow ``value`` to the nearest float32, the precision ``write_float`` keeps."""

    narrowed: float = struct.unpack(">f", struct.pack(">f", value))[0]
    return narrowed


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


__all__ = [
    "DocumentParseFunction",
    "FamilyEntry",
    "StreamInput",
    "StreamOutput",
    "TypeRegistry",
    "WireReader",
    "copy_named_writeable",
    "copy_writeable",
    "to_float32",
]
