"""pytest base class that runs the round-trip suite for one specification family.

Subclass it with a ``Test`` prefix and point ``case_class`` at a ``RoundTripCase``::

    class TestFieldSort(RoundTripTestCase[FieldSort]):
        case_class = FieldSortCase

The registry is built once per test class. Every test method runs inside a
fresh diagnostic capture that must be empty when the test ends; tests that
expect deprecation warnings consume them with ``assert_warning_headers``.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, ClassVar, Generic, TypeVar

import pytest

from roundtrip_harness.config.loader import load_harness_config
from roundtrip_harness.config.schema import HarnessConfig
from roundtrip_harness.diagnostics import DiagnosticCapture, capture_diagnostics
from roundtrip_harness.observability.logging import configure_logging
from roundtrip_harness.suite import RoundTripCase, RoundTripSuite
from roundtrip_harness.suite_context import SuiteContext, open_suite_context

T = TypeVar("T")


class RoundTripTestCase(Generic[T]):
    case_class: ClassVar[type[RoundTripCase[Any]]]

    case: RoundTripCase[T]
    suite: RoundTripSuite[T]
    diagnostics: DiagnosticCapture

    @classmethod
    def create_case(cls) -> RoundTripCase[T]:
        return cls.case_class()

    @pytest.fixture(scope="class")
    @classmethod
    def roundtrip_config(cls) -> HarnessConfig:
        config = load_harness_config()
        configure_logging(config)
        return config

    @pytest.fixture(scope="class")
    @classmethod
    def roundtrip_suite_context(cls, roundtrip_config: HarnessConfig) -> Iterator[SuiteContext]:
        families = cls.create_case().families()
        with open_suite_context(families, config=roundtrip_config) as context:
            yield context

    @pytest.fixture(autouse=True)
    def _roundtrip_harness(
        self,
        roundtrip_config: HarnessConfig,
        roundtrip_suite_context: SuiteContext,
    ) -> Iterator[None]:
        self.case = self.create_case()
        with capture_diagnostics(roundtrip_config.warning_header) as capture:
            self.diagnostics = capture
            self.suite = RoundTripSuite(self.case, roundtrip_suite_context, config=roundtrip_config)
            yield

    def assert_warning_headers(self, *expected: str) -> None:
        """Assert exactly ``expected`` warnings were emitted so far, then clear them."""

        self.diagnostics.assert_and_clear(*expected)

    def test_from_document(self) -> None:
        self.suite.check_document_roundtrip()

    def test_build_compiled_form(self) -> None:
        self.suite.check_compiled_form()

    def test_serialization(self) -> None:
        self.suite.check_wire_roundtrip()

    def test_equals_and_hashcode(self) -> None:
        self.suite.check_equals_and_hashcode()


__all__ = ["RoundTripTestCase"]
