"""Seeded random value source used by instance generators and the suite."""

from __future__ import annotations

import random
import string
from collections.abc import Callable, Sequence
from typing import Final, TypeVar

from roundtrip_harness.wire import to_float32

T = TypeVar("T")

_ASCII_LETTERS: Final[str] = string.ascii_letters
_MAX_LONG: Final[int] = (1 << 63) - 1
_MAX_OTHER_THAN_ATTEMPTS: Final[int] = 1000


class RandomSource:
    """Thin wrapper over ``random.Random`` exposing the helpers generators need.

    Every helper draws from the same underlying generator, so a suite seeded with
    the same value replays the same instances in the same order.
    """

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = random.SystemRandom().randrange(0, 1 << 32)
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise ValueError(f"seed must be an integer, got {type(seed).__name__}")
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def fork(self) -> RandomSource:
        """Derive an independent source from the next value of this one."""

        return RandomSource(self._random.randrange(0, 1 << 32))

    def random_int_between(self, low: int, high: int) -> int:
        """Uniform integer in ``[low, high]`` (both inclusive)."""

        if high < low:
            raise ValueError(f"high ({high}) must be >= low ({low})")
        return self._random.randint(low, high)

    def random_boolean(self) -> bool:
        return self._random.random() < 0.5

    def random_double(self) -> float:
        return self._random.random()

    def random_float(self) -> float:
        """Uniform value in ``[0, 1)`` that is exactly representable as float32."""

        narrowed = to_float32(self._random.random())
        if narrowed >= 1.0:
            return 0.0
        return narrowed

    def random_positive_long(self) -> int:
        return self._random.randint(1, _MAX_LONG)

    def random_ascii_of_length_between(self, min_length: int, max_length: int) -> str:
        length = self.random_int_between(min_length, max_length)
        return "".join(self._random.choice(_ASCII_LETTERS) for _ in range(length))

    def random_from(self, values: Sequence[T]) -> T:
        if not values:
            raise ValueError("cannot pick from an empty sequence")
        return values[self._random.randrange(len(values))]

    def random_subset(self, values: Sequence[T]) -> list[T]:
        return [item for item in values if self.random_boolean()]

    def random_value_other_than(self, value: T, supplier: Callable[[], T]) -> T:
        """Draw from ``supplier`` until the result differs from ``value``."""

        for _ in range(_MAX_OTHER_THAN_ATTEMPTS):
            candidate = supplier()
            if candidate != value:
                return candidate
        raise RuntimeError(
            f"supplier produced only values equal to {value!r} "
            f"after {_MAX_OTHER_THAN_ATTEMPTS} attempts"
        )

    def shuffle(self, values: list[T]) -> None:
        self._random.shuffle(values)


__all__ = ["RandomSource"]
