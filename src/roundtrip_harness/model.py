"""Capability protocols every specification family implements."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple, Protocol, runtime_checkable

if TYPE_CHECKING:
    from roundtrip_harness.context import ExecutionContext
    from roundtrip_harness.document.formats import DocumentBuilder
    from roundtrip_harness.wire import StreamOutput


class CompiledForm(NamedTuple):
    """Executable form of a specification: a comparator plus its value format."""

    comparator: Any
    format: Any


@runtime_checkable
class SpecificationObject(Protocol):
    """Value object that renders to a document and to the wire.

    ``writeable_name`` is the discriminator the wire registry resolves readers by.
    ``to_document`` writes one complete object, ``{"<root>": {...}}``, either as
    the document root or as the value of a pending field name. Implementations
    must define ``__eq__`` by value and a ``__hash__`` derived from the same
    fields.
    """

    @property
    def writeable_name(self) -> str: ...

    def write_to(self, out: StreamOutput) -> None: ...

    def to_document(self, builder: DocumentBuilder) -> None: ...


@runtime_checkable
class CompilableSpecification(SpecificationObject, Protocol):
    """Specification that can compile itself against an execution context."""

    def build(self, context: ExecutionContext) -> CompiledForm: ...


__all__ = ["CompilableSpecification", "CompiledForm", "SpecificationObject"]
