"""Declarative registry configuration loaded from JSON.

Adding a block type for a deployment means editing a ``block_types.json``,
not writing registration code::

    {
      "unknown_type_handler": "core/freeform",
      "block_types": [
        {"name": "core/image",
         "default_attributes": {"align": "none"},
         "attributes": {
           "url": {"source": "attr", "selector": "img", "attribute": "src"},
           "caption": {"source": "html", "selector": "figcaption"}}},
        {"name": "core/freeform", "extractor": "mypkg.blocks:freeform_attrs"}
      ]
    }

Matcher sources: ``attr``, ``prop``, ``html``, ``text`` and ``query`` (with a
nested ``matcher`` object or ``matchers`` mapping). ``extractor`` names a
``module:attribute`` callable.
"""
from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from postblocks import matchers
from postblocks.io_utils import load_json
from postblocks.registry import BlockTypeRegistry, RegistrationError
from postblocks.types import Extractor, ExtractorFn, MatcherRule, MatcherSet

MATCHER_SOURCES: frozenset[str] = frozenset({"attr", "prop", "html", "text", "query"})


class ConfigError(ValueError):
    """Malformed registry configuration."""


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_matcher(spec: Any, where: str = "matcher") -> MatcherRule:
    """Turn one declarative matcher object into a MatcherRule."""
    if not isinstance(spec, dict):
        raise ConfigError(f"{where}: expected an object, got {type(spec).__name__}")
    source = spec.get("source")
    if source not in MATCHER_SOURCES:
        raise ConfigError(
            f"{where}: unknown source {source!r}; expected one of {sorted(MATCHER_SOURCES)}"
        )
    selector = spec.get("selector")
    if selector is not None and not isinstance(selector, str):
        raise ConfigError(f"{where}: selector must be a string")

    match source:
        case "attr":
            attribute = spec.get("attribute")
            if not isinstance(attribute, str):
                raise ConfigError(f"{where}: 'attr' needs a string 'attribute'")
            return matchers.attr(selector, attribute)
        case "prop":
            name = spec.get("property")
            if not isinstance(name, str):
                raise ConfigError(f"{where}: 'prop' needs a string 'property'")
            try:
                return matchers.prop(selector, name)
            except ValueError as exc:
                raise ConfigError(f"{where}: {exc}") from exc
        case "html":
            return matchers.html(selector)
        case "text":
            return matchers.text(selector)
        case _:
            if not selector:
                raise ConfigError(f"{where}: 'query' needs a selector")
            if "matcher" in spec:
                return matchers.query(selector, build_matcher(spec["matcher"], f"{where}.matcher"))
            return matchers.query(selector, build_matchers(spec.get("matchers"), f"{where}.matchers"))


def build_matchers(specs: Any, where: str = "attributes") -> dict[str, MatcherRule]:
    if not isinstance(specs, dict) or not specs:
        raise ConfigError(f"{where}: expected a non-empty object of matchers")
    return {key: build_matcher(spec, f"{where}.{key}") for key, spec in specs.items()}


def resolve_extractor(ref: Any, where: str = "extractor") -> ExtractorFn:
    """Import a ``module:attribute`` reference to an extractor callable."""
    if not isinstance(ref, str) or ref.count(":") != 1:
        raise ConfigError(f"{where}: expected 'module:attribute', got {ref!r}")
    module_name, attr_name = ref.split(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"{where}: cannot import {module_name!r}: {exc}") from exc
    fn = getattr(module, attr_name, None)
    if not callable(fn):
        raise ConfigError(f"{where}: {ref!r} is not a callable")
    return fn


# ---------------------------------------------------------------------------
# Config types
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class BlockTypeConfig:
    """One ``block_types`` entry."""

    name: str
    attributes: Extractor | MatcherSet | None = None
    default_attributes: dict[str, Any] = field(default_factory=dict[str, Any])

    @classmethod
    def from_dict(cls, data: Any, index: int = 0) -> BlockTypeConfig:
        where = f"block_types[{index}]"
        if not isinstance(data, dict):
            raise ConfigError(f"{where}: expected an object")
        name = data.get("name")
        if not isinstance(name, str):
            raise ConfigError(f"{where}: missing string 'name'")
        where = f"block_types[{name}]"
        if "attributes" in data and "extractor" in data:
            raise ConfigError(f"{where}: 'attributes' and 'extractor' are mutually exclusive")

        spec: Extractor | MatcherSet | None = None
        if "attributes" in data:
            spec = MatcherSet(rules=build_matchers(data["attributes"], f"{where}.attributes"))
        elif "extractor" in data:
            spec = Extractor(fn=resolve_extractor(data["extractor"], f"{where}.extractor"))

        defaults = data.get("default_attributes", {})
        if not isinstance(defaults, dict):
            raise ConfigError(f"{where}: 'default_attributes' must be an object")
        return cls(name=name, attributes=spec, default_attributes=defaults)


@dataclass(slots=True)
class RegistryConfig:
    """Registry configuration: block types plus the unknown type handler."""

    block_types: list[BlockTypeConfig] = field(default_factory=list[BlockTypeConfig])
    unknown_type_handler: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> RegistryConfig:
        if not isinstance(data, dict):
            raise ConfigError("registry config must be a JSON object")
        handler = data.get("unknown_type_handler")
        if handler is not None and not isinstance(handler, str):
            raise ConfigError("'unknown_type_handler' must be a string")
        entries = data.get("block_types", [])
        if not isinstance(entries, list):
            raise ConfigError("'block_types' must be a list")
        return cls(
            block_types=[BlockTypeConfig.from_dict(e, i) for i, e in enumerate(entries)],
            unknown_type_handler=handler,
        )

    @classmethod
    def from_json(cls, path: Path) -> RegistryConfig:
        """Load from a block types JSON file."""
        try:
            data = load_json(path)
        except OSError as exc:
            raise ConfigError(f"{path}: cannot read: {exc}") from exc
        except ValueError as exc:
            raise ConfigError(f"{path}: invalid JSON: {exc}") from exc
        return cls.from_dict(data)

    def build_registry(self) -> BlockTypeRegistry:
        registry = BlockTypeRegistry(unknown_type_handler=self.unknown_type_handler)
        for entry in self.block_types:
            try:
                registry.register_block_type(
                    entry.name,
                    attributes=entry.attributes,
                    default_attributes=entry.default_attributes,
                )
            except RegistrationError as exc:
                raise ConfigError(str(exc)) from exc
        return registry


def load_registry(path: Path) -> BlockTypeRegistry:
    """Read *path* and return a populated registry."""
    return RegistryConfig.from_json(path).build_registry()
