"""Equality and hash contract checks for value objects."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from roundtrip_harness.errors import AssertionMismatch

T = TypeVar("T")


def assert_equal(expected: object, actual: object, message: str) -> None:
    if expected != actual:
        raise AssertionMismatch(message, expected=expected, actual=actual)


def assert_not_same(original: object, copy: object, message: str) -> None:
    if original is copy:
        raise AssertionMismatch(message, expected="a distinct instance", actual=copy)


def check_equals_and_hashcode(
    original: T,
    copy_function: Callable[[T], T],
    mutation_function: Callable[[T], T] | None = None,
) -> None:
    """Check ``__eq__``/``__hash__`` of ``original`` against its copies and a mutation.

    ``copy_function`` must return an equal but distinct instance.
    ``mutation_function`` must return an instance that differs from its input.
    """

    if original == None:  # noqa: E711
        raise AssertionMismatch("object is equal to None", expected=False, actual=True)
    if original == _Unrelated():
        raise AssertionMismatch("object is equal to an unrelated type", expected=False, actual=True)
    if original != original:  # noqa: PLR0124
        raise AssertionMismatch("object is not equal to itself", expected=original, actual=original)

    first_hash = hash(original)
    second_hash = hash(original)
    assert_equal(first_hash, second_hash, "object hash is not stable across calls")

    copy = copy_function(original)
    if copy is None:
        raise AssertionMismatch("copy function returned None", expected=original, actual=None)
    _assert_equal_both_ways(original, copy, "copy")
    assert_equal(first_hash, hash(copy), "object copy has a different hash")

    second_copy = copy_function(copy)
    _assert_equal_both_ways(copy, second_copy, "copy of copy")
    _assert_equal_both_ways(original, second_copy, "copy of copy versus original")

    if mutation_function is None:
        return
    mutation = mutation_function(original)
    if original == mutation or mutation == original:
        raise AssertionMismatch(
            "mutation is equal to the original", expected="an unequal object", actual=mutation
        )
    if not original != mutation:
        raise AssertionMismatch(
            "mutation is not unequal to the original", expected=original, actual=mutation
        )


def _assert_equal_both_ways(left: object, right: object, label: str) -> None:
    if not left == right:
        raise AssertionMismatch(f"{label} is not equal to self", expected=left, actual=right)
    if not right == left:
        raise AssertionMismatch(f"{label} equality is not symmetric", expected=left, actual=right)
    if left != right:
        raise AssertionMismatch(
            f"{label}: __ne__ disagrees with __eq__", expected=left, actual=right
        )


class _Unrelated:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<unrelated>"


__all__ = ["assert_equal", "assert_not_same", "check_equals_and_hashcode"]
