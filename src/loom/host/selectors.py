"""
CSS selector subset for the in-memory host.

Supported: type and universal selectors, ``#id``, ``.class``, attribute
selectors (``[a]``, ``[a=v]``, ``[a~=v]``, ``[a^=v]``, ``[a$=v]``,
``[a*=v]``), descendant and child (``>``) combinators, and selector lists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Protocol

_IDENT = r"-?[_a-zA-Z][_a-zA-Z0-9-]*"
_TOKEN = re.compile(
    rf"""
    (?P<ws>\s*>\s*|\s+)
  | (?P<tag>{_IDENT}|\*)
  | \#(?P<id>{_IDENT})
  | \.(?P<cls>{_IDENT})
  | \[\s*(?P<attr>[^\s~^$*=\]]+)\s*
        (?:(?P<op>[~^$*]?=)\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\]\s]+))\s*)?
    \]
    """,
    re.VERBOSE,
)


class SelectorError(ValueError):
    """Raised for selectors outside the supported subset."""


class Matchable(Protocol):
    """What a node must expose to be matched."""

    tag: str
    parent: Matchable | None

    def get_attribute(self, name: str) -> str | None: ...


@dataclass
class AttributeTest:
    name: str
    op: str | None = None
    value: str = ""

    def __call__(self, node: Matchable) -> bool:
        actual = node.get_attribute(self.name)
        if actual is None:
            return False
        if self.op is None:
            return True
        if self.op == "=":
            return actual == self.value
        if self.op == "~=":
            return self.value in actual.split()
        if self.op == "^=":
            return bool(self.value) and actual.startswith(self.value)
        if self.op == "$=":
            return bool(self.value) and actual.endswith(self.value)
        return bool(self.value) and self.value in actual


@dataclass
class Compound:
    """One compound selector, e.g. ``input.name[type=text]``."""

    tag: str | None = None
    tests: list[AttributeTest] = field(default_factory=list)

    def matches(self, node: Matchable) -> bool:
        if self.tag is not None and node.tag != self.tag:
            return False
        return all(test(node) for test in self.tests)


@dataclass
class ComplexSelector:
    """Compounds joined by combinators, stored left to right."""

    compounds: list[Compound]
    combinators: list[str]  # " " or ">" between compounds[i] and compounds[i + 1]

    def matches(self, node: Matchable, scope: Matchable | None = None) -> bool:
        return self._match_from(node, len(self.compounds) - 1, scope)

    def _match_from(self, node: Matchable, index: int, scope: Matchable | None) -> bool:
        if not self.compounds[index].matches(node):
            return False
        if index == 0:
            return True
        combinator = self.combinators[index - 1]
        ancestor = node.parent
        while ancestor is not None and ancestor is not scope:
            if hasattr(ancestor, "tag") and self._match_from(ancestor, index - 1, scope):
                return True
            if combinator == ">":
                return False
            ancestor = ancestor.parent
        return False


@dataclass
class SelectorList:
    selectors: list[ComplexSelector]

    def matches(self, node: Matchable, scope: Matchable | None = None) -> bool:
        return any(selector.matches(node, scope) for selector in self.selectors)


@lru_cache(maxsize=256)
def compile_selector(source: str) -> SelectorList:
    """Compile a selector string; results are cached."""
    selectors = [_compile_complex(part.strip(), source) for part in source.split(",")]
    return SelectorList(selectors)


def _compile_complex(part: str, source: str) -> ComplexSelector:
    if not part:
        raise SelectorError(f"Empty selector in {source!r}")

    compounds: list[Compound] = [Compound()]
    combinators: list[str] = []
    pos = 0
    while pos < len(part):
        match = _TOKEN.match(part, pos)
        if match is None:
            raise SelectorError(f"Unsupported selector syntax at {part[pos:]!r} in {source!r}")
        pos = match.end()
        current = compounds[-1]
        if match.group("ws") is not None:
            combinators.append(">" if ">" in match.group("ws") else " ")
            compounds.append(Compound())
        elif match.group("tag") is not None:
            tag = match.group("tag")
            current.tag = None if tag == "*" else tag.lower()
        elif match.group("id") is not None:
            current.tests.append(AttributeTest("id", "=", match.group("id")))
        elif match.group("cls") is not None:
            current.tests.append(AttributeTest("class", "~=", match.group("cls")))
        else:
            value = match.group("dq")
            if value is None:
                value = match.group("sq")
            if value is None:
                value = match.group("bare") or ""
            current.tests.append(AttributeTest(match.group("attr").lower(), match.group("op"), value))

    if combinators and compounds[-1].tag is None and not compounds[-1].tests:
        raise SelectorError(f"Dangling combinator in {source!r}")
    return ComplexSelector(compounds, combinators)
