"""
roundtrip-harness: unit tests for nested filter sub-objects

File: tests/unit/test_filters.py

Purpose
- Validate the fixed variant menu, random boosts, and the document and wire
  forms of each filter.
"""

from __future__ import annotations

import pytest

from roundtrip_harness.document.formats import DocumentBuilder, DocumentFormat
from roundtrip_harness.document.parser import DocumentParser, ParseContext
from roundtrip_harness.errors import DocumentParseError, InternalSelectionError
from roundtrip_harness.filters import (
    FilterSpec,
    IdsFilter,
    MatchAllFilter,
    NestedFilterVariant,
    TermFilter,
    filter_families,
    nested_filter_for,
    random_nested_filter,
)
from roundtrip_harness.randomness import RandomSource
from roundtrip_harness.wire import TypeRegistry, copy_named_writeable, to_float32


def _parse(tree: dict[str, object], *, strict: bool = True) -> FilterSpec:
    parser = DocumentParser({"filter": tree})
    parser.next_token()
    parser.next_token()
    parser.next_token()
    registry = TypeRegistry(filter_families()).freeze()
    return ParseContext(parser, registry, strict=strict).parse_inner(FilterSpec)


@pytest.mark.parametrize(
    ("variant", "expected_type"),
    [
        (NestedFilterVariant.MATCH_ALL, MatchAllFilter),
        (NestedFilterVariant.IDS, IdsFilter),
        (NestedFilterVariant.TERM, TermFilter),
    ],
)
def test_variant_menu(variant: NestedFilterVariant, expected_type: type[FilterSpec]) -> None:
    assert type(nested_filter_for(int(variant), RandomSource(4))) is expected_type


@pytest.mark.parametrize("index", [-1, 3, 10])
def test_out_of_menu_index_is_an_internal_error(index: int) -> None:
    message = f"Only 3 filter variants supported, got index {index}"
    with pytest.raises(InternalSelectionError, match=message):
        nested_filter_for(index, RandomSource(4))


def test_random_filters_cover_every_variant_with_float32_boosts() -> None:
    rng = RandomSource(8)
    seen: set[type[FilterSpec]] = set()
    for _ in range(60):
        item = random_nested_filter(rng)
        seen.add(type(item))
        boost = item.boost  # type: ignore[attr-defined]
        assert 0.0 <= boost < 1.0
        registry = TypeRegistry(filter_families()).freeze()
        assert copy_named_writeable(item, registry, FilterSpec) == item

    assert seen == {MatchAllFilter, IdsFilter, TermFilter}


@pytest.mark.parametrize(
    "item",
    [
        MatchAllFilter(boost=0.5),
        IdsFilter(types=("doc",), ids=("1", "2"), boost=1.25),
        TermFilter("price", 10.0, boost=2.0),
    ],
)
@pytest.mark.parametrize("document_format", list(DocumentFormat))
def test_document_form_parses_back(item: FilterSpec, document_format: DocumentFormat) -> None:
    builder = DocumentBuilder(document_format)
    item.to_document(builder)
    tree = builder.build().tree()

    (name,) = tree
    assert name == item.writeable_name
    assert _parse(tree) == item  # type: ignore[arg-type]


def test_term_short_form_uses_default_boost() -> None:
    assert _parse({"term": {"price": 3}}) == TermFilter("price", 3.0)


def test_ids_deprecated_type_name_is_strict_by_default() -> None:
    with pytest.raises(DocumentParseError, match=r"Deprecated field \[types\]"):
        _parse({"ids": {"types": ["a"], "values": ["1"]}})


@pytest.mark.parametrize(
    ("tree", "message"),
    [
        ({"match_all": {"boost": 1.0, "other": 1}}, r"does not support \[other\]"),
        ({"ids": {"values": "1"}}, r"\[ids\] query does not support \[values\]"),
        ({"term": {"a": 1, "b": 2}}, "does not support multiple fields"),
        ({"term": {"a": {"boost": 2.0}}}, "requires a value"),
        ({"term": {"a": [1]}}, "malformed query"),
    ],
)
def test_malformed_filters_are_rejected(tree: dict[str, object], message: str) -> None:
    with pytest.raises(DocumentParseError, match=message):
        _parse(tree)


def test_filters_compare_by_value() -> None:
    from_lists = IdsFilter(types=["a"], ids=["1"])  # type: ignore[arg-type]
    assert from_lists == IdsFilter(types=("a",), ids=("1",))
    assert hash(MatchAllFilter(2.0)) == hash(MatchAllFilter(2.0))
    assert MatchAllFilter(2.0) != MatchAllFilter(3.0)
    assert TermFilter("f", 1.0) != MatchAllFilter(1.0)


def test_term_requires_a_field_name() -> None:
    with pytest.raises(ValueError, match="term.field"):
        TermFilter("", 1.0)


@pytest.mark.parametrize(
    "item",
    [
        MatchAllFilter(boost=0.1),
        IdsFilter(types=("doc",), ids=("1",), boost=0.1),
        TermFilter("price", 0.1, boost=0.1),
    ],
)
def test_boost_is_narrowed_to_float32_so_every_form_round_trips(item: FilterSpec) -> None:
    registry = TypeRegistry(filter_families()).freeze()
    builder = DocumentBuilder(DocumentFormat.JSON)
    item.to_document(builder)

    assert item.boost == to_float32(0.1)  # type: ignore[attr-defined]
    assert copy_named_writeable(item, registry, FilterSpec) == item
    assert _parse(builder.build().tree()) == item  # type: ignore[arg-type]
