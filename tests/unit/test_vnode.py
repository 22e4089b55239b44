"""Unit tests for VNode construction and comparison."""

from __future__ import annotations

from loom.vnode import (
    Element,
    Fragment,
    Text,
    as_child_list,
    fragment,
    h,
    has_keys,
    is_equal,
    same_type,
    text,
    to_vnode,
)


class TestH:
    def test_tag_lowercased_and_key_stringified(self) -> None:
        node = h("LI", None, "a", key=1)
        assert node.tag == "li"
        assert node.key == "1"

    def test_key_lifted_from_attrs(self) -> None:
        node = h("li", {"key": "x", "title": "t"})
        assert node.key == "x"
        assert node.attrs == {"title": "t"}

    def test_class_aliases(self) -> None:
        assert h("div", {"className": "a"}).attrs == {"class": "a"}
        assert h("div", {"class_": "b"}).attrs == {"class": "b"}

    def test_style_mapping_kebab_cased(self) -> None:
        node = h("p", {"style": {"fontSize": "12px", "color": "red"}})
        assert node.attrs["style"] == "font-size: 12px; color: red"

    def test_dataset_becomes_data_attributes(self) -> None:
        node = h("p", {"dataset": {"userId": 5, "role": "admin"}})
        assert node.attrs == {"data-user-id": "5", "data-role": "admin"}

    def test_attribute_values_normalized(self) -> None:
        handler = lambda event: None  # noqa: E731
        node = h("input", {"size": 3, "title": None, "disabled": True, "onclick": handler})
        assert node.attrs == {"size": "3", "disabled": True, "onclick": handler}


class TestChildren:
    def test_children_flattened_and_filtered(self) -> None:
        node = h("div", None, None, False, True, "a", 1, [h("b"), ["c"]], fragment("d"))
        kinds = [(child.kind, getattr(child, "value", getattr(child, "tag", None))) for child in node.children]
        assert kinds == [
            ("text", "a"),
            ("text", "1"),
            ("element", "b"),
            ("text", "c"),
            ("text", "d"),
        ]

    def test_generators_flattened(self) -> None:
        node = h("ul", None, (h("li", None, str(i)) for i in range(3)))
        assert [child.tag for child in node.children] == ["li", "li", "li"]

    def test_text_helper(self) -> None:
        assert text(None).value == ""
        assert text(3).value == "3"


class TestToVNode:
    def test_none_is_empty_fragment(self) -> None:
        node = to_vnode(None)
        assert isinstance(node, Fragment)
        assert node.children == []

    def test_list_becomes_fragment(self) -> None:
        node = to_vnode(["a", h("b")])
        assert isinstance(node, Fragment)
        assert len(node.children) == 2

    def test_vnode_passes_through(self) -> None:
        node = h("div")
        assert to_vnode(node) is node

    def test_other_values_become_text(self) -> None:
        node = to_vnode(42)
        assert isinstance(node, Text)
        assert node.value == "42"

    def test_as_child_list(self) -> None:
        a, b = h("a"), h("b")
        assert as_child_list(None) == []
        assert as_child_list(a) == [a]
        assert as_child_list(Fragment(children=[a, b])) == [a, b]


class TestComparison:
    def test_same_type(self) -> None:
        assert same_type(h("div"), h("div"))
        assert not same_type(h("div"), h("span"))
        assert same_type(Text("a"), Text("b"))
        assert not same_type(Text("a"), h("a"))
        assert not same_type(None, h("a"))

    def test_is_equal_structural(self) -> None:
        assert is_equal(h("p", {"id": "x"}, "a"), h("p", {"id": "x"}, "a"))
        assert not is_equal(h("p", {"id": "x"}, "a"), h("p", {"id": "y"}, "a"))
        assert not is_equal(h("p", None, "a"), h("p", None, "b"))
        assert not is_equal(h("p", key="1"), h("p", key="2"))

    def test_has_keys(self) -> None:
        assert has_keys([h("li", key="a"), Text("x")])
        assert not has_keys([h("li"), Text("x")])

    def test_element_defaults(self) -> None:
        node = Element(tag="div")
        assert node.attrs == {}
        assert node.children == []
        assert node.key is None
        assert node.host_ref is None
