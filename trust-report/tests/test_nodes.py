from __future__ import annotations

import dataclasses

import pytest

from app.nodes import EMPTY_STYLE, Node, display, merge, style, text, texts, view


def test_node_style_defaults_to_shared_empty_mapping():
    # a plain mappingproxy default is rejected by dataclasses on 3.11+
    (style_field,) = [f for f in dataclasses.fields(Node) if f.name == "style"]
    assert style_field.default is dataclasses.MISSING
    node = Node("view")
    assert node.style is EMPTY_STYLE
    assert dict(node.style) == {}
    with pytest.raises(TypeError):
        node.style["color"] = "red"


def test_nodes_are_frozen_and_comparable():
    first = view(style(width=10), text(style(), "a"))
    second = view(style(width=10), text(style(), "a"))
    assert first == second
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.kind = "page"


def test_merge_prefers_later_styles():
    merged = merge(style(color="black", fontSize=12), None, style(color="red"))
    assert dict(merged) == {"color": "red", "fontSize": 12}


def test_text_runs_skip_empty_values():
    node = text(style(), "ID: ", 0, None, False, "", 2.0, 2.5)
    assert node.text == "ID: 022.5"
    assert display(80.0) == "80"
    assert texts(view(style(), node, text(style(), "x"))) == ["ID: 022.5", "x"]
