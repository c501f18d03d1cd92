"""Block type registry.

Holds the registered block types and the name of the unknown type handler
(the fallback used for freeform text and unregistered names). Registries
are plain instances: several can coexist in one process with different
fallback configurations.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from postblocks.types import BlockType, to_attribute_spec

logger = logging.getLogger(__name__)

BLOCK_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]*(?:/[a-z][a-z0-9_-]*)?$")


class RegistrationError(ValueError):
    """Invalid block type registration or removal."""


class BlockTypeRegistry:
    """Name → BlockType store plus the unknown type handler setting."""

    __slots__ = ("_types", "_unknown_type_handler")

    def __init__(self, *, unknown_type_handler: str | None = None) -> None:
        self._types: dict[str, BlockType] = {}
        self._unknown_type_handler = unknown_type_handler

    def register_block_type(
        self,
        name: str,
        *,
        attributes: object = None,
        default_attributes: Mapping[str, Any] | None = None,
    ) -> BlockType:
        """Register a block type.

        *attributes* may be an extractor callable, a mapping of matcher
        rules, an ``Extractor``/``MatcherSet`` or None.

        Raises:
            RegistrationError: If *name* is not a string, is malformed, or
                is already registered.
        """
        if not isinstance(name, str):
            raise RegistrationError("block names must be strings")
        if not BLOCK_NAME_RE.match(name):
            raise RegistrationError(
                f"invalid block name {name!r}: lowercase letters, digits, '-' and '_' "
                "with an optional 'namespace/' prefix"
            )
        if name in self._types:
            raise RegistrationError(f"block {name!r} is already registered")
        try:
            spec = to_attribute_spec(attributes)
        except TypeError as exc:
            raise RegistrationError(f"block {name!r}: {exc}") from exc

        block_type = BlockType(
            name=name,
            attributes=spec,
            default_attributes=dict(default_attributes or {}),
        )
        self._types[name] = block_type
        logger.debug("registered block type %s", name)
        return block_type

    def unregister_block_type(self, name: str) -> BlockType:
        """Remove and return a registered block type."""
        block_type = self._types.pop(name, None)
        if block_type is None:
            raise RegistrationError(f"block {name!r} is not registered")
        logger.debug("unregistered block type %s", name)
        return block_type

    def get_block_type(self, name: str | None) -> BlockType | None:
        if name is None:
            return None
        return self._types.get(name)

    def get_block_types(self) -> list[BlockType]:
        """Registered block types in registration order."""
        return list(self._types.values())

    def set_unknown_type_handler(self, name: str | None) -> None:
        """Set the fallback block name; it need not be registered yet."""
        self._unknown_type_handler = name

    def get_unknown_type_handler(self) -> str | None:
        return self._unknown_type_handler

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return (
            f"BlockTypeRegistry({len(self._types)} types, "
            f"unknown_type_handler={self._unknown_type_handler!r})"
        )
