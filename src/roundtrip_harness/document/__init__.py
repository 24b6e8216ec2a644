"""Structured-document codec adapters: builder, formats, pull parser, shuffling."""

from roundtrip_harness.document.formats import (
    Document,
    DocumentBuilder,
    DocumentFormat,
    decode_payload,
    encode_tree,
)
from roundtrip_harness.document.parser import (
    DocumentParser,
    ParseContext,
    ParseField,
    Token,
    skip_to_root,
)
from roundtrip_harness.document.shuffle import shuffle_document, shuffle_tree

__all__ = [
    "Document",
    "DocumentBuilder",
    "DocumentFormat",
    "DocumentParser",
    "ParseContext",
    "ParseField",
    "Token",
    "decode_payload",
    "encode_tree",
    "shuffle_document",
    "shuffle_tree",
    "skip_to_root",
]
