"""
roundtrip-harness: round-trip correctness checks for specification objects.

File: src/roundtrip_harness/__init__.py

Purpose
- Package root. Exports the small public surface families plug into.

A specification family (sort criteria, filters, ...) implements document
rendering, wire serialization and value equality. Subclassing ``RoundTripCase``
and ``RoundTripTestCase`` checks all three contracts over randomly generated
instances.

Import boundary
- No config loading or logging setup at import time.
"""

from roundtrip_harness.context import (
    ExecutionContext,
    FieldKind,
    FieldTypeDescriptor,
    NumberType,
    ObjectDescriptor,
    build_mock_context,
)
from roundtrip_harness.diagnostics import DeprecationLogger, capture_diagnostics
from roundtrip_harness.equality import check_equals_and_hashcode
from roundtrip_harness.errors import (
    AssertionMismatch,
    DocumentParseError,
    InternalSelectionError,
    UnexpectedDiagnostic,
    UnknownTypeDiscriminator,
    WireFormatError,
)
from roundtrip_harness.filters import FilterSpec, random_nested_filter
from roundtrip_harness.model import CompilableSpecification, CompiledForm, SpecificationObject
from roundtrip_harness.randomness import RandomSource
from roundtrip_harness.suite import RoundTripCase, RoundTripSuite, SuiteReport
from roundtrip_harness.suite_context import SuiteContext, build_suite_context, open_suite_context
from roundtrip_harness.wire import FamilyEntry, StreamInput, StreamOutput, TypeRegistry

__version__ = "0.1.0"

__all__ = [
    "AssertionMismatch",
    "CompilableSpecification",
    "CompiledForm",
    "DeprecationLogger",
    "DocumentParseError",
    "ExecutionContext",
    "FamilyEntry",
    "FieldKind",
    "FieldTypeDescriptor",
    "FilterSpec",
    "InternalSelectionError",
    "NumberType",
    "ObjectDescriptor",
    "RandomSource",
    "RoundTripCase",
    "RoundTripSuite",
    "SpecificationObject",
    "StreamInput",
    "StreamOutput",
    "SuiteContext",
    "SuiteReport",
    "TypeRegistry",
    "UnexpectedDiagnostic",
    "UnknownTypeDiscriminator",
    "WireFormatError",
    "__version__",
    "build_mock_context",
    "build_suite_context",
    "capture_diagnostics",
    "check_equals_and_hashcode",
    "open_suite_context",
    "random_nested_filter",
]
