"""Error taxonomy shared by the harness modules."""

from __future__ import annotations

from collections.abc import Iterable


class AssertionMismatch(AssertionError):
    """A decoded or compiled value disagrees with the value it was derived from."""

    def __init__(
        self,
        message: str,
        *,
        expected: object = None,
        actual: object = None,
        trial: int | None = None,
        seed: int | None = None,
    ) -> None:
        self.message = message
        self.expected = expected
        self.actual = actual
        self.trial = trial
        self.seed = seed
        super().__init__(_format_mismatch(message, expected, actual, trial, seed))

    def with_trial(self, trial: int, seed: int | None) -> AssertionMismatch:
        """Return a copy annotated with the trial that produced it."""

        if self.trial is not None:
            return self
        return AssertionMismatch(
            self.message,
            expected=self.expected,
            actual=self.actual,
            trial=trial,
            seed=seed,
        )


class UnexpectedDiagnostic(AssertionError):
    """The diagnostic channel held messages nobody expected, or missed expected ones."""

    def __init__(self, *, unexpected: Iterable[str] = (), missing: Iterable[str] = ()) -> None:
        self.unexpected = tuple(unexpected)
        self.missing = tuple(missing)
        parts: list[str] = []
        if self.unexpected:
            parts.append(f"unexpected warning headers: {list(self.unexpected)}")
        if self.missing:
            parts.append(f"expected warning headers not emitted: {list(self.missing)}")
        super().__init__("; ".join(parts) or "diagnostic channel mismatch")


class UnknownTypeDiscriminator(LookupError):
    """No reader is registered for a ``(category, name)`` pair."""

    def __init__(self, category: str, name: str, known: Iterable[str] = ()) -> None:
        self.category = category
        self.name = name
        known_names = ", ".join(known)
        super().__init__(f"unknown {category} [{name}]; registered: [{known_names}]")

    def __str__(self) -> str:
        return str(self.args[0])


class InternalSelectionError(RuntimeError):
    """An index into a fixed variant menu fell outside the menu."""


class DocumentParseError(ValueError):
    """A structured document could not be parsed into the requested object."""


class WireFormatError(ValueError):
    """Binary wire input is truncated or malformed."""


def _format_mismatch(
    message: str,
    expected: object,
    actual: object,
    trial: int | None,
    seed: int | None,
) -> str:
    lines = [message]
    if trial is not None:
        suffix = f" (seed={seed})" if seed is not None else ""
        lines[0] = f"trial {trial}: {message}{suffix}"
    if expected is not None or actual is not None:
        lines.append(f"  expected: {expected!r}")
        lines.append(f"  actual:   {actual!r}")
    return "\n".join(lines)


__all__ = [
    "AssertionMismatch",
    "DocumentParseError",
    "InternalSelectionError",
    "UnexpectedDiagnostic",
    "UnknownTypeDiscriminator",
    "WireFormatError",
]
