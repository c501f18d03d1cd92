"""Post body parsing: comment-delimited sections → typed, attributed blocks."""

from postblocks.attributes import get_block_attributes, parse_block_attributes
from postblocks.config import ConfigError, RegistryConfig, load_registry
from postblocks.factory import create_block
from postblocks.grammar import GrammarError, parse_grammar
from postblocks.matchers import attr, html, parse_matchers, prop, query, text
from postblocks.parser import (
    create_block_with_fallback,
    parse,
    parse_with_grammar,
    resolve_block_type,
)
from postblocks.registry import BlockTypeRegistry, RegistrationError
from postblocks.types import (
    Block,
    BlockType,
    Extractor,
    MatcherRule,
    MatcherSet,
    ParseNode,
)

__version__ = "0.1.0"

__all__ = [
    "Block",
    "BlockType",
    "BlockTypeRegistry",
    "ConfigError",
    "Extractor",
    "GrammarError",
    "MatcherRule",
    "MatcherSet",
    "ParseNode",
    "RegistrationError",
    "RegistryConfig",
    "attr",
    "create_block",
    "create_block_with_fallback",
    "get_block_attributes",
    "html",
    "load_registry",
    "parse",
    "parse_block_attributes",
    "parse_grammar",
    "parse_matchers",
    "parse_with_grammar",
    "prop",
    "query",
    "resolve_block_type",
    "text",
]
