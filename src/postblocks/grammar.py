"""Block delimiter grammar: serialized post body → ordered parse nodes.

Structured sections are bounded by HTML comment markers::

    <!-- blk:core/image {"align":"left"} -->   opening marker (attrs optional)
    ...raw inner content...
    <!-- /blk:core/image -->                   closing marker
    <!-- blk:core/separator /-->               void (self-closing) marker

Grammar (PEG-flavoured)::

    document      := (section | freeform)*
    section       := void_marker | open_marker raw_content close_marker
    open_marker   := '<!--' WS* 'blk:' NAME (WS+ ATTRS)? WS* '-->'
    void_marker   := '<!--' WS* 'blk:' NAME (WS+ ATTRS)? WS* '/-->'
    close_marker  := '<!--' WS* '/blk:' NAME WS* '-->'
    NAME          := SEGMENT ('/' SEGMENT)?
    SEGMENT       := [a-z] [a-z0-9_-]*
    ATTRS         := '{' (!('}' WS* '/'? '-->') .)* '}'   (a JSON object)

The raw content of a section is taken verbatim up to the first closing
marker with the same name; markers inside it are inert. Everything outside
sections is emitted as freeform spans (``block_name=None``), one per maximal
gap. Nodes tile the document: joining ``document[n.char_start:n.char_end]``
over all nodes reproduces it exactly.
"""
from __future__ import annotations

import re
from typing import Any

import orjson

from postblocks.types import ParseNode

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_NAME = r"[a-z][a-z0-9_-]*(?:/[a-z][a-z0-9_-]*)?"

# Anything that starts like a delimiter must parse as one.
_MARKER_START_RE = re.compile(r"<!--\s*/?blk:")

_MARKER_RE = re.compile(
    r"<!--\s*"
    r"(?P<closer>/)?blk:(?P<name>" + _NAME + r")"
    r"(?:\s+(?P<attrs>\{(?:(?!-->).)*?\}))?"
    r"\s*(?P<void>/)?-->",
    re.DOTALL,
)


class GrammarError(ValueError):
    """Malformed delimiter structure; fatal to the whole parse."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} (at offset {offset})")
        self.offset = offset


def _closer_re(name: str) -> re.Pattern[str]:
    return re.compile(r"<!--\s*/blk:" + re.escape(name) + r"\s*-->")


def _decode_attrs(payload: str | None, offset: int) -> dict[str, Any]:
    if payload is None:
        return {}
    try:
        value = orjson.loads(payload)
    except orjson.JSONDecodeError as exc:
        raise GrammarError(f"invalid block attributes {payload!r}: {exc}", offset) from exc
    if not isinstance(value, dict):
        raise GrammarError(
            f"block attributes must be a JSON object, got {type(value).__name__}", offset
        )
    return value


def _freeform(document: str, start: int, end: int) -> ParseNode:
    return ParseNode(
        block_name=None,
        raw_content=document[start:end],
        char_start=start,
        char_end=end,
    )


def parse_grammar(document: str) -> list[ParseNode]:
    """Tokenize *document* into structured sections and freeform spans.

    Args:
        document: Complete serialized post body.

    Returns:
        Parse nodes in document order. Empty list for an empty document.

    Raises:
        GrammarError: On a malformed or unmatched marker, or an attribute
            payload that is not a JSON object.
    """
    nodes: list[ParseNode] = []
    pos = 0
    freeform_start = 0

    while True:
        found = _MARKER_START_RE.search(document, pos)
        if found is None:
            break
        start = found.start()
        marker = _MARKER_RE.match(document, start)
        if marker is None:
            raise GrammarError("malformed block delimiter", start)
        name = marker.group("name")
        if marker.group("closer"):
            if marker.group("attrs") is not None or marker.group("void"):
                raise GrammarError(f"closing delimiter for {name!r} cannot carry attributes", start)
            raise GrammarError(f"closing delimiter for {name!r} without opening delimiter", start)

        if start > freeform_start:
            nodes.append(_freeform(document, freeform_start, start))

        attrs = _decode_attrs(marker.group("attrs"), start)
        if marker.group("void"):
            nodes.append(ParseNode(
                block_name=name,
                raw_content="",
                attrs=attrs,
                char_start=start,
                char_end=marker.end(),
            ))
            pos = marker.end()
        else:
            closer = _closer_re(name).search(document, marker.end())
            if closer is None:
                raise GrammarError(f"opening delimiter for {name!r} is never closed", start)
            nodes.append(ParseNode(
                block_name=name,
                raw_content=document[marker.end():closer.start()],
                attrs=attrs,
                char_start=start,
                char_end=closer.end(),
            ))
            pos = closer.end()
        freeform_start = pos

    if freeform_start < len(document):
        nodes.append(_freeform(document, freeform_start, len(document)))
    return nodes
