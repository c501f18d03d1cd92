"""Core types shared by the grammar, resolver and assembler layers.

Type hierarchy:
  ParseNode    — One structured section or freeform span from the grammar
  MatcherRule  — Marker-tagged extraction rule evaluated against an HTML tree
  Extractor    — AttributeSpec variant: whole-content extractor function
  MatcherSet   — AttributeSpec variant: mapping of attribute key → rule
  BlockType    — Registered block type (name, attribute spec, defaults)
  Block        — Final typed, attributed content unit

All dataclasses use slots=True. Nodes and blocks are frozen; attribute
dicts are built fresh per node and never mutated after construction.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from bs4.element import Tag

Attributes: TypeAlias = dict[str, Any]
ExtractorFn: TypeAlias = Callable[[str], Attributes]
MatcherFn: TypeAlias = Callable[[Tag], Any]


# ---------------------------------------------------------------------------
# Grammar output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParseNode:
    """A structured section (``block_name`` set) or a freeform span.

    ``char_start``/``char_end`` cover the whole node in the source document,
    delimiter markers included, so consecutive nodes tile the document.
    """

    block_name: str | None
    raw_content: str
    attrs: Attributes = field(default_factory=dict[str, Any])
    char_start: int = 0
    char_end: int = 0

    def __post_init__(self) -> None:
        if self.char_start < 0:
            raise ValueError(f"char_start must be >= 0, got {self.char_start}")
        if self.char_end < self.char_start:
            raise ValueError(
                f"char_end ({self.char_end}) must be >= char_start ({self.char_start})"
            )


# ---------------------------------------------------------------------------
# Attribute specs — tagged variant
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MatcherRule:
    """Extraction rule deriving one attribute value from a parsed tree.

    Only rules with ``is_matcher=True`` are evaluated; the constructors in
    ``postblocks.matchers`` set it. ``fn`` returns None for "no match".
    """

    fn: MatcherFn
    is_matcher: bool = True
    description: str = ""

    def __call__(self, node: Tag) -> Any:
        return self.fn(node)


@dataclass(frozen=True, slots=True)
class Extractor:
    """Attribute spec computing the full attribute dict from raw text."""

    fn: ExtractorFn


@dataclass(frozen=True, slots=True)
class MatcherSet:
    """Attribute spec mapping attribute keys to matcher rules.

    Values that are not tagged ``MatcherRule`` instances are tolerated here
    and dropped at evaluation time.
    """

    rules: Mapping[str, object]


AttributeSpec: TypeAlias = Extractor | MatcherSet


def to_attribute_spec(value: object) -> AttributeSpec | None:
    """Wrap a bare callable or mapping into its AttributeSpec variant."""
    match value:
        case None:
            return None
        case Extractor() | MatcherSet():
            return value
        case Mapping():
            return MatcherSet(rules=dict(value))
        case _ if callable(value):
            return Extractor(fn=value)
        case _:
            raise TypeError(
                f"attributes must be a callable or a mapping of matchers, got {type(value).__name__}"
            )


# ---------------------------------------------------------------------------
# Block types and blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BlockType:
    """A registered block type."""

    name: str
    attributes: AttributeSpec | None = None
    default_attributes: Attributes = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True)
class Block:
    """A parsed block: unique id, type name and resolved attributes."""

    uid: str
    name: str
    attributes: Attributes = field(default_factory=dict[str, Any])

    def to_dict(self, *, include_uid: bool = True) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "attributes": dict(self.attributes)}
        if include_uid:
            out = {"uid": self.uid, **out}
        return out


BlockLookup: TypeAlias = Callable[[str], BlockType | None]
BlockConstructor: TypeAlias = Callable[[str, Attributes], Block]
