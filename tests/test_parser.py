"""Tests for postblocks.parser — type fallback, suppression and assembly."""
from __future__ import annotations

from typing import Any

import pytest

from postblocks.grammar import GrammarError
from postblocks.matchers import attr, html
from postblocks.parser import (
    create_block_with_fallback,
    parse,
    parse_with_grammar,
    resolve_block_type,
    trim_content,
)
from postblocks.registry import BlockTypeRegistry
from postblocks.types import Block, MatcherRule


def _registry(*names: str, fallback: str | None = "freeform") -> BlockTypeRegistry:
    registry = BlockTypeRegistry(unknown_type_handler=fallback)
    for name in names:
        registry.register_block_type(name)
    return registry


def _summary(blocks: list[Block]) -> list[tuple[str, dict[str, Any]]]:
    return [(b.name, b.attributes) for b in blocks]


class TestResolveBlockType:
    def test_declared_name_wins(self) -> None:
        registry = _registry("note", "freeform")
        name, block_type = resolve_block_type("note", registry.get_block_type, "freeform")
        assert name == "note"
        assert block_type is registry.get_block_type("note")

    def test_absent_name_uses_fallback(self) -> None:
        registry = _registry("freeform")
        name, block_type = resolve_block_type(None, registry.get_block_type, "freeform")
        assert name == "freeform"
        assert block_type is not None

    def test_unknown_name_retries_fallback(self) -> None:
        registry = _registry("freeform")
        name, block_type = resolve_block_type("missing", registry.get_block_type, "freeform")
        assert name == "freeform"
        assert block_type is registry.get_block_type("freeform")

    def test_unregistered_fallback_stops_after_second_lookup(self) -> None:
        calls: list[str] = []

        def lookup(name: str) -> None:
            calls.append(name)
            return None

        name, block_type = resolve_block_type("missing", lookup, "freeform")
        assert (name, block_type) == ("freeform", None)
        assert calls == ["missing", "freeform"]

    def test_unset_fallback(self) -> None:
        registry = _registry("note", fallback=None)
        assert resolve_block_type(None, registry.get_block_type, None) == (None, None)
        assert resolve_block_type("other", registry.get_block_type, None) == (None, None)


class TestCreateBlockWithFallback:
    def test_whitespace_fallback_suppressed(self) -> None:
        registry = _registry("freeform")
        block = create_block_with_fallback(
            None, " \n\t ", {}, lookup=registry.get_block_type, fallback_name="freeform"
        )
        assert block is None

    def test_unresolved_type_suppressed(self) -> None:
        registry = _registry(fallback=None)
        block = create_block_with_fallback(
            "note", "content", {}, lookup=registry.get_block_type, fallback_name=None
        )
        assert block is None

    def test_named_whitespace_section_kept(self) -> None:
        registry = _registry("spacer", "freeform")
        block = create_block_with_fallback(
            "spacer", "   ", {}, lookup=registry.get_block_type, fallback_name="freeform"
        )
        assert block is not None
        assert block.name == "spacer"

    def test_explicit_section_named_like_fallback_suppressed_when_empty(self) -> None:
        registry = _registry("freeform")
        block = create_block_with_fallback(
            "freeform", "  ", {"a": 1}, lookup=registry.get_block_type, fallback_name="freeform"
        )
        assert block is None

    def test_content_is_trimmed_before_extraction(self) -> None:
        seen: list[str] = []
        registry = BlockTypeRegistry(unknown_type_handler="freeform")
        registry.register_block_type(
            "freeform", attributes=lambda raw: seen.append(raw) or {"content": raw}
        )
        block = create_block_with_fallback(
            None, "\n  hello  \n", None, lookup=registry.get_block_type, fallback_name="freeform"
        )
        assert block is not None
        assert block.attributes == {"content": "hello"}
        assert seen == ["hello"]

    def test_byte_order_mark_only_fallback_suppressed(self) -> None:
        registry = _registry("freeform")
        content = chr(0xFEFF) + " " + chr(0x3000)
        block = create_block_with_fallback(
            None, content, {}, lookup=registry.get_block_type, fallback_name="freeform"
        )
        assert block is None

    @pytest.mark.parametrize("code_point", [0x1C, 0x1D, 0x1E, 0x1F, 0x85])
    def test_separator_controls_are_content(self, code_point: int) -> None:
        registry = _registry("freeform")
        block = create_block_with_fallback(
            None, f" {chr(code_point)} ", {},
            lookup=registry.get_block_type, fallback_name="freeform",
        )
        assert block is not None
        assert block.name == "freeform"

    def test_trim_content(self) -> None:
        raw = chr(0xFEFF) + "\n\t" + chr(0xA0) + "hi" + chr(0x2028) + " "
        assert trim_content(raw) == "hi"
        assert trim_content(chr(0x1F) + "x") == chr(0x1F) + "x"

    def test_custom_constructor(self) -> None:
        registry = _registry("note")
        built: list[tuple[str, dict[str, Any]]] = []

        def construct(name: str, attributes: dict[str, Any]) -> Block:
            built.append((name, attributes))
            return Block(uid="fixed", name=name, attributes=attributes)

        block = create_block_with_fallback(
            "note", "x", {"k": 1},
            lookup=registry.get_block_type, fallback_name=None, construct=construct,
        )
        assert block == Block(uid="fixed", name="note", attributes={"k": 1})
        assert built == [("note", {"k": 1})]


class TestParse:
    def test_note_with_delimiter_attrs(self) -> None:
        blocks = parse('<!--blk:note {"pinned":true}-->hi<!--/blk:note-->', _registry("note"))
        assert _summary(blocks) == [("note", {"pinned": True})]

    def test_stray_text_falls_back(self) -> None:
        blocks = parse("stray text", _registry("freeform"))
        assert _summary(blocks) == [("freeform", {})]

    def test_whitespace_only_document(self) -> None:
        assert parse("   ", _registry("freeform")) == []

    def test_empty_document(self) -> None:
        assert parse("", _registry("freeform")) == []

    def test_whitespace_between_sections_suppressed(self) -> None:
        doc = "<!--blk:a-->A<!--/blk:a-->\n\n   \n<!--blk:b-->B<!--/blk:b-->"
        blocks = parse(doc, _registry("a", "b", "freeform"))
        assert [b.name for b in blocks] == ["a", "b"]

    def test_named_void_section_kept(self) -> None:
        blocks = parse("<!--blk:separator /-->", _registry("separator", "freeform"))
        assert _summary(blocks) == [("separator", {})]

    def test_unknown_name_uses_fallback_resolution(self) -> None:
        registry = BlockTypeRegistry(unknown_type_handler="freeform")
        registry.register_block_type(
            "freeform",
            attributes={"content": html()},
            default_attributes={"legacy": True},
        )
        blocks = parse('<!--blk:gallery {"cols":3}--><p>x</p><!--/blk:gallery-->', registry)
        assert _summary(blocks) == [
            ("freeform", {"cols": 3, "legacy": True, "content": "<p>x</p>"}),
        ]

    def test_unknown_name_without_fallback_dropped(self) -> None:
        blocks = parse(
            "intro<!--blk:gallery-->x<!--/blk:gallery--><!--blk:note-->n<!--/blk:note-->",
            _registry("note", fallback=None),
        )
        assert [b.name for b in blocks] == ["note"]

    def test_document_order_preserved(self) -> None:
        doc = "one<!--blk:a/-->two<!--blk:b-->B<!--/blk:b-->three"
        blocks = parse(doc, _registry("a", "b", "freeform"))
        assert [b.name for b in blocks] == ["freeform", "a", "freeform", "b", "freeform"]

    def test_extracted_attributes(self) -> None:
        registry = BlockTypeRegistry(unknown_type_handler="freeform")
        registry.register_block_type(
            "image",
            attributes={"url": attr("img", "src"), "caption": html("figcaption")},
            default_attributes={"align": "none"},
        )
        doc = (
            '<!-- blk:image {"align":"left","url":"old.png"} -->\n'
            '<figure><img src="new.png"><figcaption>Hi</figcaption></figure>\n'
            "<!-- /blk:image -->"
        )
        blocks = parse(doc, registry)
        assert _summary(blocks) == [
            ("image", {"align": "none", "url": "new.png", "caption": "Hi"}),
        ]

    def test_grammar_error_yields_no_partial_result(self) -> None:
        with pytest.raises(GrammarError):
            parse("<!--blk:a/--><!--blk:b {bad}-->x<!--/blk:b-->", _registry("a", "b"))

    def test_extraction_failure_propagates(self) -> None:
        registry = BlockTypeRegistry()

        def boom(raw: str) -> dict[str, Any]:
            raise KeyError("missing")

        registry.register_block_type("note", attributes=boom)
        with pytest.raises(KeyError):
            parse("<!--blk:note-->x<!--/blk:note-->", registry)

    def test_matcher_failure_propagates(self) -> None:
        def boom(node: object) -> str:
            raise LookupError("bad selector state")

        registry = BlockTypeRegistry()
        registry.register_block_type("note", attributes={"body": MatcherRule(fn=boom)})
        with pytest.raises(LookupError, match="bad selector state"):
            parse("<!--blk:note--><p>x</p><!--/blk:note-->", registry)

    def test_construction_failure_propagates(self) -> None:
        registry = _registry("a", "b")
        built: list[str] = []

        def construct(name: str, attributes: dict[str, Any]) -> Block:
            if name == "b":
                raise RuntimeError("cannot build b")
            built.append(name)
            return Block(uid=name, name=name, attributes=attributes)

        result: list[Block] | None = None
        with pytest.raises(RuntimeError, match="cannot build b"):
            result = parse_with_grammar(
                "<!--blk:a/--><!--blk:b/--><!--blk:a/-->",
                lookup=registry.get_block_type,
                fallback_name=None,
                construct=construct,
            )
        assert result is None
        assert built == ["a"]

    def test_parse_with_grammar_explicit_config(self) -> None:
        registry = _registry("note", "freeform", "html")
        doc = "text<!--blk:unknown-->u<!--/blk:unknown-->"
        as_freeform = parse_with_grammar(
            doc, lookup=registry.get_block_type, fallback_name="freeform"
        )
        as_html = parse_with_grammar(doc, lookup=registry.get_block_type, fallback_name="html")
        assert [b.name for b in as_freeform] == ["freeform", "freeform"]
        assert [b.name for b in as_html] == ["html", "html"]

    def test_blocks_get_distinct_uids(self) -> None:
        blocks = parse("<!--blk:a/--><!--blk:a/-->", _registry("a"))
        assert len({b.uid for b in blocks}) == 2
