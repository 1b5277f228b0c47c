"""Declarative document tree handed from the composer to the PDF renderer.

A report is a tree of ``Node`` values: ``document`` > ``page`` > ``view`` /
``text`` / ``image``. Styles are read-only mappings using flexbox-like keys
(``flexDirection``, ``alignItems``, ``marginBottom``, ``fontFamily``...).
Lengths are points unless given as strings with a ``cm``/``mm``/``%`` unit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple, Union


Style = Mapping[str, Any]
EMPTY_STYLE: Style = MappingProxyType({})


@dataclass(frozen=True)
class Node:
    kind: str
    # dataclasses reject unhashable defaults such as mappingproxy (3.11+)
    style: Style = field(default_factory=lambda: EMPTY_STYLE)
    children: Tuple["Node", ...] = ()
    runs: Tuple[str, ...] = ()
    src: Union[bytes, str, None] = field(default=None, repr=False)

    @property
    def text(self) -> str:
        return "".join(self.runs)


def style(**props: Any) -> Style:
    return MappingProxyType(dict(props))


def merge(*styles: Optional[Style]) -> Style:
    """Later styles win, like a style array."""
    merged: dict = {}
    for s in styles:
        if s:
            merged.update(s)
    return MappingProxyType(merged)


def display(value: Any) -> str:
    """Text for a run value; integral floats lose their ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def document(*pages: Node) -> Node:
    return Node("document", children=tuple(pages))


def page(s: Style, *children: Node, size: str = "A5") -> Node:
    return Node("page", merge(s, {"size": size}), tuple(children))


def view(s: Style, *children: Node) -> Node:
    return Node("view", s, tuple(children))


def text(s: Style, *runs: Any) -> Node:
    # None, False and "" render nothing
    return Node("text", s, runs=tuple(display(r) for r in runs if r is not None and r is not False and r != ""))


def image(src: Union[bytes, str], s: Style = EMPTY_STYLE) -> Node:
    return Node("image", s, src=src)


def walk(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from walk(child)


def texts(node: Node) -> list:
    return [n.text for n in walk(node) if n.kind == "text"]
