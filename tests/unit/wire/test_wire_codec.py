"""
roundtrip-harness: unit tests for the binary wire codec

File: tests/unit/wire/test_wire_codec.py

Purpose
- Validate primitive encodings, generic values, and rejection of truncated or
  malformed input.
"""

from __future__ import annotations

import math
import struct
from enum import StrEnum

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from roundtrip_harness.errors import WireFormatError
from roundtrip_harness.wire import StreamInput, StreamOutput


class _Color(StrEnum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"


_SETTINGS = settings(max_examples=100, derandomize=True, deadline=None)


@given(value=st.integers(min_value=0, max_value=(1 << 32) - 1))
@_SETTINGS
def test_vint_values_read_back(value: int) -> None:
    out = StreamOutput()
    out.write_vint(value)
    stream = StreamInput(out.bytes())

    assert stream.read_vint() == value
    stream.ensure_consumed()


@given(value=st.integers(min_value=0, max_value=(1 << 63) - 1))
@_SETTINGS
def test_vlong_values_read_back(value: int) -> None:
    out = StreamOutput()
    out.write_vlong(value)

    assert StreamInput(out.bytes()).read_vlong() == value


@given(
    text=st.text(max_size=40),
    number=st.integers(min_value=-(1 << 63), max_value=(1 << 63) - 1),
    real=st.floats(allow_nan=False, allow_infinity=False),
)
@_SETTINGS
def test_mixed_primitives_read_back_in_sequence(text: str, number: int, real: float) -> None:
    out = StreamOutput()
    out.write_string(text)
    out.write_long(number)
    out.write_double(real)
    out.write_bool(True)
    stream = StreamInput(out.bytes())

    assert stream.read_string() == text
    assert stream.read_long() == number
    assert stream.read_double() == real
    assert stream.read_bool() is True
    assert stream.remaining == 0


def test_varint_layout_is_little_endian_base_128() -> None:
    out = StreamOutput()
    out.write_vint(0)
    out.write_vint(127)
    out.write_vint(128)
    out.write_vint(300)

    assert out.bytes() == b"\x00\x7f\x80\x01\xac\x02"


def test_fixed_width_integers_are_big_endian() -> None:
    out = StreamOutput()
    out.write_int(-2)
    out.write_long(1)

    assert out.bytes() == b"\xff\xff\xff\xfe" + b"\x00" * 7 + b"\x01"
    assert len(out) == 12


def test_float_is_narrowed_to_single_precision() -> None:
    out = StreamOutput()
    out.write_float(0.1)

    narrowed = StreamInput(out.bytes()).read_float()

    assert narrowed != 0.1
    assert narrowed == struct.unpack(">f", struct.pack(">f", 0.1))[0]


def test_optional_and_array_values() -> None:
    out = StreamOutput()
    out.write_optional_string(None)
    out.write_optional_string("x")
    out.write_string_array(["a", "bc"])
    out.write_enum(_Color.BLUE)
    out.write_optional_enum(None)
    out.write_optional_enum(_Color.RED)
    stream = StreamInput(out.bytes())

    assert stream.read_optional_string() is None
    assert stream.read_optional_string() == "x"
    assert stream.read_string_array() == ("a", "bc")
    assert stream.read_enum(_Color) is _Color.BLUE
    assert stream.read_optional_enum(_Color) is None
    assert stream.read_optional_enum(_Color) is _Color.RED
    stream.ensure_consumed()


@pytest.mark.parametrize("value", [None, "text", "", 42, -(1 << 63), 2.5, True, False])
def test_generic_values_keep_their_type(value: object) -> None:
    out = StreamOutput()
    out.write_generic_value(value)

    decoded = StreamInput(out.bytes()).read_generic_value()

    assert decoded == value
    assert type(decoded) is type(value)


@pytest.mark.parametrize("value", [math.inf, math.nan, object(), [1]])
def test_generic_values_reject_unsupported_inputs(value: object) -> None:
    with pytest.raises(ValueError):
        StreamOutput().write_generic_value(value)


@pytest.mark.parametrize(
    ("method", "value"),
    [
        (StreamOutput.write_vint, -1),
        (StreamOutput.write_vint, 1 << 32),
        (StreamOutput.write_vlong, 1 << 63),
        (StreamOutput.write_byte, 256),
    ],
)
def test_writers_reject_out_of_range_values(method: object, value: int) -> None:
    with pytest.raises(ValueError, match="out of range"):
        method(StreamOutput(), value)  # type: ignore[operator]


def test_every_truncation_of_a_payload_is_rejected() -> None:
    out = StreamOutput()
    out.write_string("hello")
    out.write_double(1.5)
    payload = out.bytes()

    for cut in range(len(payload)):
        stream = StreamInput(payload[:cut])
        with pytest.raises(WireFormatError, match="truncated input"):
            stream.read_string()
            stream.read_double()


@pytest.mark.parametrize(
    ("payload", "reader", "message"),
    [
        (b"\x02", StreamInput.read_bool, "invalid boolean byte 2"),
        (b"\x80\x80\x80\x80\x10", StreamInput.read_vint, "vint overflow"),
        (b"\x03", StreamInput.read_generic_value, r"unknown generic value type \[3\]"),
        (b"\x02\xff\xfe", StreamInput.read_string, "invalid utf-8"),
        (b"\x80\x80\x80\x10", StreamInput.read_string, "exceeds"),
    ],
)
def test_malformed_input_is_rejected(payload: bytes, reader: object, message: str) -> None:
    with pytest.raises(WireFormatError, match=message):
        reader(StreamInput(payload))  # type: ignore[operator]


def test_unknown_enum_ordinal_is_rejected() -> None:
    with pytest.raises(WireFormatError, match=r"unknown _Color ordinal \[3\]"):
        StreamInput(b"\x03").read_enum(_Color)


def test_trailing_bytes_fail_ensure_consumed() -> None:
    stream = StreamInput(b"\x01\x00")
    stream.read_bool()

    with pytest.raises(WireFormatError, match="1 unread byte"):
        stream.ensure_consumed()


def test_named_reads_require_a_registry() -> None:
    out = StreamOutput()
    out.write_string("match_all")

    with pytest.raises(RuntimeError, match="without a type registry"):
        StreamInput(out.bytes()).read_named_writeable(object)
