"""Round-trip checks for a specification family.

A family plugs in by subclassing ``RoundTripCase`` and the ``RoundTripSuite``
runs four checks over freshly generated instances: document round trip, compiled
form, wire round trip, and equals/hash consistency. Each check stops at the
first failing trial and reports the trial number and the seed that replays it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

import structlog

from roundtrip_harness.config.schema import HarnessConfig, PrettyPrintMode
from roundtrip_harness.context import (
    FieldTypeDescriptor,
    ObjectDescriptor,
    build_mock_context,
    default_field_type,
    default_object_descriptor,
)
from roundtrip_harness.document.formats import DocumentBuilder
from roundtrip_harness.document.parser import ParseContext, skip_to_root
from roundtrip_harness.document.shuffle import shuffle_document
from roundtrip_harness.equality import assert_equal, assert_not_same, check_equals_and_hashcode
from roundtrip_harness.errors import AssertionMismatch, UnexpectedDiagnostic
from roundtrip_harness.model import CompilableSpecification
from roundtrip_harness.observability.logging import correlation_scope
from roundtrip_harness.randomness import RandomSource
from roundtrip_harness.wire import copy_writeable

if TYPE_CHECKING:
    from roundtrip_harness.suite_context import SuiteContext
    from roundtrip_harness.wire import FamilyEntry

T = TypeVar("T")


class RoundTripCase(ABC, Generic[T]):
    """Hooks a specification family supplies to be checked by ``RoundTripSuite``.

    ``category`` is the registry category the family's wire readers are
    registered under; ``families()`` returns those registry entries.
    """

    category: ClassVar[type]
    # Object keys whose subtree keeps its order when documents are shuffled.
    shuffle_exempt_fields: ClassVar[tuple[str, ...]] = ()

    @property
    def family_name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def families(self) -> Sequence[FamilyEntry]:
        """Registry entries for the family under test."""

    @abstractmethod
    def create_test_item(self, rng: RandomSource) -> T:
        """Return a fresh, randomly populated instance."""

    @abstractmethod
    def mutate(self, original: T, rng: RandomSource) -> T:
        """Return an instance that differs from ``original`` in at least one field."""

    @abstractmethod
    def from_document(self, context: ParseContext, root_name: str) -> T:
        """Parse the root element's value; the parser is positioned on it."""

    @abstractmethod
    def compile_assertions(self, item: T, comparator: Any, format: Any) -> None:
        """Assert that ``item`` compiled into ``comparator`` and ``format`` correctly."""

    def resolve_field_type(self, name: str) -> FieldTypeDescriptor:
        return default_field_type(name)

    def resolve_object(self, path: str) -> ObjectDescriptor:
        return default_object_descriptor(path)


class CheckName(StrEnum):
    DOCUMENT_ROUNDTRIP = "document_roundtrip"
    COMPILED_FORM = "compiled_form"
    WIRE_ROUNDTRIP = "wire_roundtrip"
    EQUALS_AND_HASHCODE = "equals_and_hashcode"


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    check: CheckName
    passed: bool
    trials: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "check": self.check.value,
            "passed": self.passed,
            "trials": self.trials,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class SuiteReport:
    family: str
    seed: int
    outcomes: tuple[CheckOutcome, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return all(outcome.passed for outcome in self.outcomes)

    @property
    def failures(self) -> tuple[CheckOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if not outcome.passed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "seed": self.seed,
            "passed": self.passed,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class RoundTripSuite(Generic[T]):
    """Runs the round-trip checks of one case against one suite context."""

    def __init__(
        self,
        case: RoundTripCase[T],
        context: SuiteContext,
        *,
        config: HarnessConfig | None = None,
        rng: RandomSource | None = None,
        logger: Any | None = None,
    ) -> None:
        self._case = case
        self._context = context
        self._config = config if config is not None else context.config
        self._rng = rng if rng is not None else RandomSource(self._config.seed)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._logger.debug("roundtrip_suite_seeded", family=case.family_name, seed=self._rng.seed)

    @property
    def seed(self) -> int:
        return self._rng.seed

    @property
    def config(self) -> HarnessConfig:
        return self._config

    def check_document_roundtrip(self) -> int:
        """Render, shuffle and re-parse instances; each must parse back equal."""

        registry = self._context.registry
        case = self._case

        def trial(_: int) -> None:
            item = case.create_test_item(self._rng)
            document_format = self._rng.random_from(self._config.document_formats)
            builder = DocumentBuilder(document_format, pretty=self._pretty_flag())
            item.to_document(builder)  # type: ignore[attr-defined]
            shuffled = shuffle_document(builder.build(), self._rng, case.shuffle_exempt_fields)

            parser = shuffled.parser()
            root_name = skip_to_root(parser, self._config.root_skip_tokens)
            parse_context = ParseContext(parser, registry, strict=self._config.strict_parsing)
            parsed = case.from_document(parse_context, root_name)
            _assert_roundtrip(item, parsed, f"parsed {document_format.value} document")

        return self._run(CheckName.DOCUMENT_ROUNDTRIP, trial)

    def check_compiled_form(self) -> int:
        """Compile instances against a mock context and hand the result to the case."""

        case = self._case
        context = build_mock_context(
            field_type_resolver=case.resolve_field_type,
            object_resolver=case.resolve_object,
            rng=self._rng,
        )

        def trial(_: int) -> None:
            item = case.create_test_item(self._rng)
            if not isinstance(item, CompilableSpecification):
                raise TypeError(f"{type(item).__name__} does not implement build(context)")
            compiled = item.build(context)
            try:
                case.compile_assertions(item, compiled.comparator, compiled.format)
            except AssertionMismatch:
                raise
            except AssertionError as exc:
                raise AssertionMismatch(
                    f"compiled form assertion failed: {exc}",
                    expected=item,
                    actual=compiled,
                ) from exc

        return self._run(CheckName.COMPILED_FORM, trial)

    def check_wire_roundtrip(self) -> int:
        """Write instances to the wire and read them back through the registry."""

        def trial(_: int) -> None:
            item = self._case.create_test_item(self._rng)
            parsed = self._wire_copy(item)
            _assert_roundtrip(item, parsed, "wire copy")

        return self._run(CheckName.WIRE_ROUNDTRIP, trial)

    def check_equals_and_hashcode(self) -> int:
        def trial(_: int) -> None:
            item = self._case.create_test_item(self._rng)
            check_equals_and_hashcode(
                item,
                self._wire_copy,
                lambda original: self._case.mutate(original, self._rng),
            )

        return self._run(CheckName.EQUALS_AND_HASHCODE, trial)

    def run_all(self) -> SuiteReport:
        """Run every check, recording a failure per check instead of stopping at the first."""

        checks: tuple[tuple[CheckName, Callable[[], int]], ...] = (
            (CheckName.DOCUMENT_ROUNDTRIP, self.check_document_roundtrip),
            (CheckName.COMPILED_FORM, self.check_compiled_form),
            (CheckName.WIRE_ROUNDTRIP, self.check_wire_roundtrip),
            (CheckName.EQUALS_AND_HASHCODE, self.check_equals_and_hashcode),
        )
        outcomes: list[CheckOutcome] = []
        for name, check in checks:
            try:
                trials = check()
            except Exception as exc:  # noqa: BLE001
                trial = getattr(exc, "trial", None)
                outcomes.append(
                    CheckOutcome(
                        check=name,
                        passed=False,
                        trials=trial + 1 if isinstance(trial, int) else 0,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                )
            else:
                outcomes.append(CheckOutcome(check=name, passed=True, trials=trials))

        report = SuiteReport(
            family=self._case.family_name, seed=self.seed, outcomes=tuple(outcomes)
        )
        self._logger.info(
            "roundtrip_suite_report",
            passed=report.passed,
            failed_checks=[outcome.check.value for outcome in report.failures],
        )
        return report

    def _wire_copy(self, item: T) -> T:
        registry = self._context.registry
        name = item.writeable_name  # type: ignore[attr-defined]
        reader = registry.get_reader(self._case.category, name)
        copy: T = copy_writeable(item, registry, reader)  # type: ignore[arg-type]
        return copy

    def _pretty_flag(self) -> bool:
        mode = self._config.pretty_print
        if mode is PrettyPrintMode.ALWAYS:
            return True
        if mode is PrettyPrintMode.NEVER:
            return False
        return self._rng.random_boolean()

    def _run(self, check: CheckName, trial_function: Callable[[int], None]) -> int:
        seed = self._rng.seed
        trials = self._config.trial_count
        with correlation_scope(seed=seed, family=self._case.family_name, check=check):
            for trial in range(trials):
                with correlation_scope(trial=trial):
                    try:
                        trial_function(trial)
                    except UnexpectedDiagnostic:
                        raise
                    except AssertionMismatch as exc:
                        annotated = exc.with_trial(trial, seed)
                        if annotated is exc:
                            raise
                        raise annotated from exc
                    except AssertionError as exc:
                        raise AssertionMismatch(
                            str(exc) or type(exc).__name__, trial=trial, seed=seed
                        ) from exc
                    except Exception as exc:
                        exc.add_note(f"{check.value} trial {trial} (seed={seed})")
                        raise
            self._logger.debug("roundtrip_check_passed", trials=trials)
        return trials


def _assert_roundtrip(original: object, parsed: object, label: str) -> None:
    assert_not_same(original, parsed, f"{label} is the same instance as the original")
    assert_equal(original, parsed, f"{label} is not equal to the original")
    assert_equal(hash(original), hash(parsed), f"{label} has a different hash than the original")


__all__ = [
    "CheckName",
    "CheckOutcome",
    "RoundTripCase",
    "RoundTripSuite",
    "SuiteReport",
]
