from __future__ import annotations

import unittest

from xhtmlpurifier import DEFAULT_POLICY, PurifyPolicy
from xhtmlpurifier.node import ElementNode, TextNode
from xhtmlpurifier.serialize import allowed_attributes, serialize_end_tag, serialize_start_tag, to_xhtml


def _element(name, *children, attrs=None, void=False):
    node = ElementNode(name, attrs, void)
    for child in children:
        node.append_child(TextNode(child) if isinstance(child, str) else child)
    return node


def _fragment(*children):
    return _element("#document-fragment", *children)


class TestTags(unittest.TestCase):
    def test_start_and_end_tags(self) -> None:
        assert serialize_start_tag("p", None) == "<p>"
        assert serialize_start_tag("a", {"href": "/x", "title": 'say "hi" & go'}) == (
            '<a href="/x" title="say &quot;hi&quot; &amp; go">'
        )
        assert serialize_start_tag("img", {"src": "a.png"}, is_void=True) == '<img src="a.png" />'
        assert serialize_end_tag("p") == "</p>"

    def test_allowed_attributes(self) -> None:
        cell = _element("td", attrs={"style": "color: red", "class": "c", "rowspan": "", "colspan": "2"})
        assert list(allowed_attributes(cell, DEFAULT_POLICY).items()) == [("colspan", "2"), ("class", "c")]

    def test_unsafe_urls_are_dropped(self) -> None:
        link = _element("a", attrs={"href": "javascript:alert(1)", "title": "t"})
        assert allowed_attributes(link, DEFAULT_POLICY) == {"title": "t"}


class TestLayout(unittest.TestCase):
    def test_text_is_escaped(self) -> None:
        root = _fragment(_element("p", "a < b & c > d"))
        assert to_xhtml(root) == "<p>\n  a &lt; b &amp; c &gt; d\n</p>"

    def test_blocks_are_indented(self) -> None:
        root = _fragment(_element("blockquote", _element("p", "quoted"), attrs={"cite": "http://example.com/"}))
        assert to_xhtml(root) == (
            '<blockquote cite="http://example.com/">\n  <p>\n    quoted\n  </p>\n</blockquote>'
        )

    def test_inline_runs_share_a_line(self) -> None:
        paragraph = _element("p", _element("strong", "x"), "   ", _element("em", "y"), " tail ")
        assert to_xhtml(_fragment(paragraph)) == "<p>\n  <strong>x</strong> <em>y</em> tail\n</p>"

    def test_void_blocks(self) -> None:
        root = _fragment(_element("p", "a"), _element("hr", void=True), _element("p", "b"))
        assert to_xhtml(root) == "<p>\n  a\n</p>\n<hr />\n<p>\n  b\n</p>"

    def test_empty_elements_are_left_out(self) -> None:
        root = _fragment(
            _element("ul", _element("li", "  ")),
            _element("p", _element("strong"), "x"),
        )
        assert to_xhtml(root) == "<p>\n  x\n</p>"

    def test_single_nodes(self) -> None:
        assert to_xhtml(_element("strong", "x")) == "<strong>x</strong>"
        assert to_xhtml(TextNode("1 < 2")) == "1 &lt; 2"
        assert to_xhtml(_element("p", "x")) == "<p>\n  x\n</p>"

    def test_indent_size(self) -> None:
        root = _fragment(_element("ul", _element("li", "x")))
        flat = PurifyPolicy(elements=DEFAULT_POLICY.elements, indent_size=0)
        assert to_xhtml(root, policy=flat) == "<ul>\n<li>\nx\n</li>\n</ul>"


if __name__ == "__main__":
    unittest.main()
