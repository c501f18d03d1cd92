"""Post parser: grammar nodes → typed, attributed blocks.

Each parse node is resolved to a block type (falling back once to the
unknown type handler), filtered, given its merged attributes and handed to
a block constructor. The result keeps document order and has no entries
for suppressed nodes.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from postblocks.attributes import get_block_attributes
from postblocks.factory import create_block
from postblocks.grammar import parse_grammar
from postblocks.registry import BlockTypeRegistry
from postblocks.types import Block, BlockConstructor, BlockLookup, BlockType

logger = logging.getLogger(__name__)

# Trimmed set: ECMAScript WhiteSpace + LineTerminator. Unlike str.isspace it
# includes U+FEFF and excludes U+001C-U+001F and U+0085.
CONTENT_WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)


def trim_content(raw_content: str) -> str:
    """Strip leading/trailing whitespace from section content."""
    return raw_content.strip(CONTENT_WHITESPACE)


def resolve_block_type(
    name: str | None,
    lookup: BlockLookup,
    fallback_name: str | None,
) -> tuple[str | None, BlockType | None]:
    """Pick the block name and type governing a node.

    The declared *name* is tried first (the fallback when absent); if it
    does not resolve, the fallback is tried once more. There is no further
    retry, so an unregistered fallback cannot loop.
    """
    block_name = name or fallback_name
    block_type = lookup(block_name) if block_name is not None else None
    if block_type is None:
        block_name = fallback_name
        block_type = lookup(block_name) if block_name is not None else None
    return block_name, block_type


def create_block_with_fallback(
    name: str | None,
    raw_content: str,
    attrs: Mapping[str, Any] | None,
    *,
    lookup: BlockLookup,
    fallback_name: str | None,
    construct: BlockConstructor = create_block,
) -> Block | None:
    """Build the block for one parse node, or None when it is suppressed.

    A node is suppressed when no type resolves, or when its trimmed content
    is empty and it resolved to the fallback name. Whitespace inside an
    explicitly named section is kept.
    """
    block_name, block_type = resolve_block_type(name, lookup, fallback_name)
    if block_type is None or block_name is None:
        logger.debug("no block type for %r (fallback %r); node dropped", name, fallback_name)
        return None

    content = trim_content(raw_content)
    if not content and block_name == fallback_name:
        logger.debug("empty %r node dropped", block_name)
        return None

    if name is not None and block_name != name:
        logger.debug("unknown block %r handled as %r", name, block_name)
    return construct(block_name, get_block_attributes(block_type, content, attrs))


def parse_with_grammar(
    document: str,
    *,
    lookup: BlockLookup,
    fallback_name: str | None,
    construct: BlockConstructor = create_block,
) -> list[Block]:
    """Parse *document* into blocks.

    Raises:
        GrammarError: If the delimiter structure is malformed. No partial
            result is returned.
    """
    blocks: list[Block] = []
    for node in parse_grammar(document):
        block = create_block_with_fallback(
            node.block_name,
            node.raw_content,
            node.attrs,
            lookup=lookup,
            fallback_name=fallback_name,
            construct=construct,
        )
        if block is not None:
            blocks.append(block)
    return blocks


def parse(
    document: str,
    registry: BlockTypeRegistry,
    *,
    construct: BlockConstructor = create_block,
) -> list[Block]:
    """Parse *document* using the types and fallback held by *registry*."""
    return parse_with_grammar(
        document,
        lookup=registry.get_block_type,
        fallback_name=registry.get_unknown_type_handler(),
        construct=construct,
    )
