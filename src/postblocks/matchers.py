"""Matcher rules: derive block attributes from a section's HTML content.

A matcher is a ``MatcherRule`` whose function receives a tree node and
returns one attribute value, or None when nothing matches. Trees are built
with BeautifulSoup (``html.parser``); the tree shape is incidental and block
authors should use these helpers rather than walk the tree themselves.

Public API:

* ``attr(selector, name)`` — attribute value of the first match.
* ``prop(selector, name)`` — DOM-style property of the first match.
* ``html(selector)`` — inner HTML of the first match.
* ``text(selector)`` — text content of the first match.
* ``query(selector, matcher)`` — one value per match of *selector*.
* ``parse_matchers(raw_content, rules)`` — evaluate a rule mapping.

Only rules flagged ``is_matcher`` are evaluated. Everything else in a rule
mapping is dropped so that unrelated callables never run against content.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag

from postblocks.types import Attributes, MatcherRule

_PARSER = "html.parser"


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


def _select(node: Tag, selector: str | None) -> Tag | None:
    if not selector:
        return node
    return node.select_one(selector)


def _inner_html(node: Tag) -> str:
    return node.decode_contents()


def _outer_html(node: Tag) -> str:
    if isinstance(node, BeautifulSoup):
        return node.decode_contents()
    return node.decode()


def _text_content(node: Tag) -> str:
    return node.get_text()


def _node_name(node: Tag) -> str:
    if isinstance(node, BeautifulSoup):
        return "#document-fragment"
    return node.name.upper()


def _child_element_count(node: Tag) -> int:
    return sum(1 for child in node.children if isinstance(child, Tag))


_PROPERTIES: dict[str, Callable[[Tag], Any]] = {
    "textContent": _text_content,
    "innerHTML": _inner_html,
    "outerHTML": _outer_html,
    "nodeName": _node_name,
    "childElementCount": _child_element_count,
}


def build_tree(raw_content: str) -> BeautifulSoup:
    """Parse raw section content into a tree rooted at the fragment."""
    return BeautifulSoup(raw_content, _PARSER)


def known_matchers(rules: Mapping[str, object]) -> dict[str, MatcherRule]:
    """Keep only entries that are tagged matcher rules."""
    return {
        key: rule
        for key, rule in rules.items()
        if isinstance(rule, MatcherRule) and rule.is_matcher
    }


def evaluate_matchers(node: Tag, rules: Mapping[str, object]) -> Attributes:
    """Apply each known matcher to *node*; rules with no match add no key."""
    out: Attributes = {}
    for key, rule in known_matchers(rules).items():
        value = rule(node)
        if value is not None:
            out[key] = value
    return out


def parse_matchers(raw_content: str, rules: Mapping[str, object]) -> Attributes:
    """Build a tree from *raw_content* and evaluate *rules* against it."""
    return evaluate_matchers(build_tree(raw_content), rules)


# ---------------------------------------------------------------------------
# Matcher constructors
# ---------------------------------------------------------------------------


def prop(selector: str | None, name: str) -> MatcherRule:
    """Select a DOM-style property (``textContent``, ``innerHTML``, ...)."""
    getter = _PROPERTIES.get(name)
    if getter is None:
        raise ValueError(
            f"unsupported property {name!r}; expected one of {sorted(_PROPERTIES)}"
        )

    def match(node: Tag) -> Any:
        target = _select(node, selector)
        return None if target is None else getter(target)

    return MatcherRule(fn=match, description=f"prop({selector!r}, {name!r})")


def attr(selector: str | None, name: str) -> MatcherRule:
    """Select the value of attribute *name* on the first match.

    Multi-valued attributes (``class``) are joined with spaces.
    """

    def match(node: Tag) -> Any:
        target = _select(node, selector)
        if target is None:
            return None
        value = target.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    return MatcherRule(fn=match, description=f"attr({selector!r}, {name!r})")


def html(selector: str | None = None) -> MatcherRule:
    """Select the inner HTML of the first match."""
    rule = prop(selector, "innerHTML")
    return MatcherRule(fn=rule.fn, description=f"html({selector!r})")


def text(selector: str | None = None) -> MatcherRule:
    """Select the text content of the first match."""
    rule = prop(selector, "textContent")
    return MatcherRule(fn=rule.fn, description=f"text({selector!r})")


def query(selector: str, matcher: MatcherRule | Mapping[str, object]) -> MatcherRule:
    """Apply *matcher* to every element matching *selector*.

    With a single rule each entry is that rule's value (None kept as a
    positional placeholder); with a mapping each entry is a dict evaluated
    like a top-level rule set. No match yields an empty list.

    Raises:
        ValueError: If *matcher* is neither a tagged rule nor a mapping.
    """
    if isinstance(matcher, MatcherRule):
        if not matcher.is_matcher:
            raise ValueError(f"query({selector!r}) needs a tagged matcher rule")
    elif not isinstance(matcher, Mapping):
        raise ValueError(
            f"query({selector!r}) needs a matcher rule or a mapping, got {type(matcher).__name__}"
        )

    def match(node: Tag) -> Any:
        results: list[Any] = []
        for element in node.select(selector):
            if isinstance(matcher, MatcherRule):
                results.append(matcher(element))
            else:
                results.append(evaluate_matchers(element, matcher))
        return results

    return MatcherRule(fn=match, description=f"query({selector!r})")
