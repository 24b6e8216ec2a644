"""
roundtrip-harness: unit tests for the round-trip suite orchestrator

File: tests/unit/harness/test_roundtrip_suite.py

Purpose
- Validate that each check passes for well-behaved families and fails
  deterministically, with trial and seed, for broken ones.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from sample_sorts import (
    MISSING_FIRST,
    FieldSort,
    FieldSortCase,
    ScoreSortCase,
    SortOrder,
    SortSpec,
)

from roundtrip_harness.config.schema import HarnessConfig, PrettyPrintMode
from roundtrip_harness.document.parser import ParseContext
from roundtrip_harness.errors import AssertionMismatch, UnknownTypeDiscriminator
from roundtrip_harness.randomness import RandomSource
from roundtrip_harness.suite import CheckName, RoundTripSuite
from roundtrip_harness.suite_context import SuiteContext, build_suite_context, open_suite_context


class _EqualMutationCase(FieldSortCase):
    """Generator bug: mutate() hands back an equal object."""

    def mutate(self, original: FieldSort, rng: RandomSource) -> FieldSort:
        return FieldSort(
            original.field_name,
            order=original.order,
            missing=original.missing,
            unmapped_type=original.unmapped_type,
            mode=original.mode,
            nested_path=original.nested_path,
            nested_filter=original.nested_filter,
        )


class _FirstFieldOnlyCase(FieldSortCase):
    """Parser bug: only the first field of the body is read."""

    def create_test_item(self, rng: RandomSource) -> FieldSort:
        return FieldSort(
            rng.random_ascii_of_length_between(1, 10),
            order=SortOrder.DESC,
            missing=MISSING_FIRST,
        )

    def from_document(self, context: ParseContext, root_name: str) -> FieldSort:
        parser = context.parser
        parser.next_token()
        first = parser.current_name()
        parser.next_token()
        order = SortOrder(parser.text()) if first == "order" else SortOrder.ASC
        return FieldSort(root_name, order=order, missing=MISSING_FIRST)


class _PlainAssertCase(FieldSortCase):
    def compile_assertions(self, item: FieldSort, comparator: Any, format: Any) -> None:
        assert comparator is None, "comparator should never be built"


class _CountingCase(ScoreSortCase):
    def __init__(self) -> None:
        self.created = 0

    def create_test_item(self, rng: RandomSource) -> Any:
        self.created += 1
        return super().create_test_item(rng)


class _RecordingCase(FieldSortCase):
    def __init__(self) -> None:
        self.items: list[FieldSort] = []

    def create_test_item(self, rng: RandomSource) -> FieldSort:
        item = super().create_test_item(rng)
        self.items.append(item)
        return item


@pytest.fixture
def sort_context() -> Iterator[SuiteContext]:
    with open_suite_context(FieldSortCase().families()) as context:
        yield context


def _suite(case: Any, context: SuiteContext, **overrides: Any) -> RoundTripSuite[Any]:
    config = HarnessConfig(seed=1234, **overrides)
    return RoundTripSuite(case, context, config=config)


@pytest.mark.unit
class TestWellBehavedFamilies:
    def test_field_sort_passes_every_check(self, sort_context: SuiteContext) -> None:
        report = _suite(FieldSortCase(), sort_context).run_all()

        assert report.passed, report.to_dict()
        assert [outcome.check for outcome in report.outcomes] == list(CheckName)
        assert all(outcome.trials == 20 for outcome in report.outcomes)

    def test_score_sort_passes_every_check(self, sort_context: SuiteContext) -> None:
        report = _suite(ScoreSortCase(), sort_context).run_all()

        assert report.passed, report.to_dict()
        assert report.to_dict()["seed"] == 1234

    def test_trial_count_is_honored(self, sort_context: SuiteContext) -> None:
        case = _CountingCase()
        suite = _suite(case, sort_context, trial_count=3)

        assert suite.check_wire_roundtrip() == 3
        assert case.created == 3

    def test_same_seed_replays_same_instances(self, sort_context: SuiteContext) -> None:
        first = _RecordingCase()
        second = _RecordingCase()
        _suite(first, sort_context).check_document_roundtrip()
        _suite(second, sort_context).check_document_roundtrip()

        assert first.items == second.items
        assert len(first.items) == 20

    @pytest.mark.parametrize("mode", list(PrettyPrintMode))
    def test_every_pretty_print_mode_roundtrips(
        self, sort_context: SuiteContext, mode: PrettyPrintMode
    ) -> None:
        _suite(FieldSortCase(), sort_context, pretty_print=mode).check_document_roundtrip()


@pytest.mark.unit
class TestBrokenFamilies:
    def test_equal_mutation_fails_on_first_trial(self, sort_context: SuiteContext) -> None:
        suite = _suite(_EqualMutationCase(), sort_context)

        with pytest.raises(AssertionMismatch) as excinfo:
            suite.check_equals_and_hashcode()

        assert excinfo.value.trial == 0
        assert excinfo.value.seed == 1234
        assert "mutation is equal to the original" in str(excinfo.value)
        assert "seed=1234" in str(excinfo.value)

    def test_equal_mutation_failure_is_deterministic(self, sort_context: SuiteContext) -> None:
        messages = []
        for _ in range(2):
            with pytest.raises(AssertionMismatch) as excinfo:
                _suite(_EqualMutationCase(), sort_context).check_equals_and_hashcode()
            messages.append(str(excinfo.value))

        assert messages[0] == messages[1]

    def test_order_sensitive_parser_is_caught_by_shuffling(
        self, sort_context: SuiteContext
    ) -> None:
        suite = _suite(_FirstFieldOnlyCase(), sort_context)

        with pytest.raises(AssertionMismatch) as excinfo:
            suite.check_document_roundtrip()

        assert excinfo.value.trial is not None
        assert "is not equal to the original" in excinfo.value.message

    def test_plain_assertion_in_compile_hook_becomes_mismatch(
        self, sort_context: SuiteContext
    ) -> None:
        suite = _suite(_PlainAssertCase(), sort_context)

        with pytest.raises(AssertionMismatch) as excinfo:
            suite.check_compiled_form()

        assert excinfo.value.trial == 0
        assert "comparator should never be built" in str(excinfo.value)
        assert "expected:" not in str(excinfo.value)
        assert "actual:" not in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, AssertionMismatch)
        assert isinstance(excinfo.value.__cause__.__cause__, AssertionError)

    def test_missing_registry_entry_is_reported(self) -> None:
        with open_suite_context() as context:
            suite = _suite(FieldSortCase(), context)
            with pytest.raises(UnknownTypeDiscriminator) as excinfo:
                suite.check_wire_roundtrip()

        assert excinfo.value.category == SortSpec.__name__
        assert excinfo.value.name == "field_sort"
        assert any("wire_roundtrip trial 0" in note for note in excinfo.value.__notes__)

    def test_run_all_reports_each_failing_check(self, sort_context: SuiteContext) -> None:
        report = _suite(_EqualMutationCase(), sort_context).run_all()

        assert not report.passed
        assert [outcome.check for outcome in report.failures] == [CheckName.EQUALS_AND_HASHCODE]
        failure = report.failures[0]
        assert failure.trials == 1
        assert failure.error is not None
        assert failure.error.startswith("AssertionMismatch: trial 0:")
        assert report.to_dict()["outcomes"][3]["passed"] is False


@pytest.mark.unit
def test_suite_defaults_to_context_config() -> None:
    context = build_suite_context(config=HarnessConfig(seed=99, trial_count=2))
    try:
        suite = RoundTripSuite(ScoreSortCase(), context)
        assert suite.seed == 99
        assert suite.config.trial_count == 2
    finally:
        context.close()
