"""Permute object keys in a document without changing its meaning."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import TYPE_CHECKING

from roundtrip_harness.document.formats import Document, encode_tree

if TYPE_CHECKING:
    from roundtrip_harness.document.formats import DocumentValue
    from roundtrip_harness.randomness import RandomSource


def shuffle_document(
    document: Document,
    rng: RandomSource,
    exempt_fields: Collection[str] = (),
) -> Document:
    """Re-render ``document`` in the same format with every object's keys shuffled.

    Objects stored under a name in ``exempt_fields`` keep their key order (and so
    does everything below them). Array element order is never changed.
    """

    shuffled = shuffle_tree(document.tree(), rng, exempt_fields)
    assert isinstance(shuffled, dict)
    return Document(
        format=document.format,
        payload=encode_tree(shuffled, document.format, pretty=document.pretty),
        pretty=document.pretty,
    )


def shuffle_tree(
    value: object,
    rng: RandomSource,
    exempt_fields: Collection[str] = (),
) -> DocumentValue:
    exempt = frozenset(exempt_fields)
    return _shuffle(value, rng, exempt, parent_key=None)


def _shuffle(
    value: object,
    rng: RandomSource,
    exempt: frozenset[str],
    *,
    parent_key: str | None,
) -> DocumentValue:
    if parent_key is not None and parent_key in exempt:
        return value  # type: ignore[return-value]
    if isinstance(value, Mapping):
        keys = list(value)
        rng.shuffle(keys)
        return {key: _shuffle(value[key], rng, exempt, parent_key=key) for key in keys}
    if isinstance(value, list):
        return [_shuffle(item, rng, exempt, parent_key=parent_key) for item in value]
    return value  # type: ignore[return-value]


__all__ = ["shuffle_document", "shuffle_tree"]
