"""
roundtrip-harness: unit tests for document field-order shuffling

File: tests/unit/document/test_document_shuffle.py

Purpose
- Validate that shuffling permutes object keys only: values, array order and
  exempt subtrees are untouched, and a seed replays the same permutation.
"""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from roundtrip_harness.document.formats import (
    Document,
    DocumentFormat,
    DocumentValue,
    encode_tree,
)
from roundtrip_harness.document.shuffle import shuffle_document, shuffle_tree
from roundtrip_harness.randomness import RandomSource

_KEY = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=6)

_SCALAR: st.SearchStrategy[DocumentValue] = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-1000, max_value=1000),
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789 ", max_size=12),
)

_VALUE: st.SearchStrategy[DocumentValue] = st.recursive(
    _SCALAR,
    lambda child: st.one_of(
        st.lists(child, max_size=4),
        st.dictionaries(_KEY, child, max_size=5),
    ),
    max_leaves=25,
)

_TREE = st.dictionaries(_KEY, _VALUE, min_size=1, max_size=6)


def _key_orders(value: object) -> list[list[str]]:
    orders: list[list[str]] = []
    if isinstance(value, dict):
        orders.append(list(value))
        for item in value.values():
            orders.extend(_key_orders(item))
    elif isinstance(value, list):
        for item in value:
            orders.extend(_key_orders(item))
    return orders


@given(tree=_TREE, seed=st.integers(min_value=0, max_value=2**32 - 1))
@settings(max_examples=50, derandomize=True, deadline=None)
def test_shuffle_preserves_content_and_array_order(
    tree: dict[str, DocumentValue], seed: int
) -> None:
    shuffled = shuffle_tree(tree, RandomSource(seed))

    # dict equality ignores key order; list equality does not.
    assert shuffled == tree


@given(tree=_TREE, seed=st.integers(min_value=0, max_value=2**32 - 1))
@settings(max_examples=50, derandomize=True, deadline=None)
def test_same_seed_replays_the_same_permutation(
    tree: dict[str, DocumentValue], seed: int
) -> None:
    first = shuffle_tree(tree, RandomSource(seed))
    second = shuffle_tree(tree, RandomSource(seed))

    assert _key_orders(first) == _key_orders(second)


@given(
    inner=st.dictionaries(_KEY, _SCALAR, min_size=2, max_size=6),
    seed=st.integers(min_value=0, max_value=2**32 - 1),
)
@settings(max_examples=50, derandomize=True, deadline=None)
def test_exempt_fields_keep_their_key_order(
    inner: dict[str, DocumentValue], seed: int
) -> None:
    tree: dict[str, DocumentValue] = {"kept": {"nested": dict(inner)}, "free": dict(inner)}

    shuffled = shuffle_tree(tree, RandomSource(seed), exempt_fields=("kept",))

    assert isinstance(shuffled, dict)
    assert _key_orders(shuffled["kept"]) == _key_orders(tree["kept"])
    assert shuffled["free"] == inner


def test_shuffling_eventually_changes_key_order() -> None:
    tree = {key: index for index, key in enumerate("abcdefgh")}
    rng = RandomSource(3)

    orders = {tuple(shuffle_tree(tree, rng)) for _ in range(10)}  # type: ignore[arg-type]

    assert len(orders) > 1


def test_shuffle_document_keeps_format_and_pretty_flag() -> None:
    tree = {"sort": {"order": "asc", "missing": "_last", "mode": "min"}}
    for document_format in DocumentFormat:
        document = Document(
            document_format, encode_tree(tree, document_format, pretty=True), pretty=True
        )

        shuffled = shuffle_document(document, RandomSource(11))

        assert shuffled.format is document_format
        assert shuffled.pretty
        assert shuffled.tree() == tree
