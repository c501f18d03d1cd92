"""Attribute resolution for a parsed section.

Three sources are merged in ascending precedence::

    delimiter attrs  <  block type default_attributes  <  extracted

Extracted attributes come from the block type's own attribute spec, either
an ``Extractor`` receiving the raw text or a ``MatcherSet`` evaluated
against an HTML tree of it.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from postblocks.matchers import parse_matchers
from postblocks.types import Attributes, BlockType, Extractor, MatcherSet


def parse_block_attributes(raw_content: str, block_type: BlockType) -> Attributes:
    """Return the attributes *block_type* derives from *raw_content*."""
    match block_type.attributes:
        case Extractor(fn=fn):
            return fn(raw_content)
        case MatcherSet(rules=rules):
            return parse_matchers(raw_content, rules)
        case _:
            return {}


def get_block_attributes(
    block_type: BlockType | None,
    raw_content: str,
    attrs: Mapping[str, Any] | None,
) -> Attributes:
    """Merge delimiter attributes with defaults and extracted attributes.

    Args:
        block_type: Governing block type, or None when unresolved.
        raw_content: Section content (already trimmed by the caller).
        attrs: Attributes from the opening delimiter.

    Returns:
        A new dict; none of the inputs are mutated.
    """
    merged: Attributes = dict(attrs or {})
    if block_type is None:
        return merged
    merged.update(block_type.default_attributes)
    merged.update(parse_block_attributes(raw_content, block_type))
    return merged
