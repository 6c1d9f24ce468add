from __future__ import annotations

import dataclasses
import unittest

from xhtmlpurifier import DEFAULT_POLICY, ElementRule, PurifyPolicy, purify


class TestElementRule(unittest.TestCase):
    def test_rename_to_accepts_a_single_name(self) -> None:
        assert ElementRule(rename_to="strong").rename_to == ("strong",)
        assert ElementRule(rename_to=["p", "strong"]).rename_to == ("p", "strong")

    def test_collections_are_normalized(self) -> None:
        rule = ElementRule(attributes=["href"], excludes=["a", "img"])
        assert rule.attributes == ("href",)
        assert rule.excludes == frozenset({"a", "img"})

    def test_rules_are_frozen(self) -> None:
        with self.assertRaises(dataclasses.FrozenInstanceError):
            ElementRule().inline = True  # type: ignore[misc]


class TestTransform(unittest.TestCase):
    def test_kept_renamed_and_dropped(self) -> None:
        assert DEFAULT_POLICY.transform("p") == ("p",)
        assert DEFAULT_POLICY.transform("b") == ("strong",)
        assert DEFAULT_POLICY.transform("i") == ("em",)
        assert DEFAULT_POLICY.transform("span") == ()

    def test_headings(self) -> None:
        assert DEFAULT_POLICY.transform("h1") == ("p", "strong")
        policy = PurifyPolicy(elements=DEFAULT_POLICY.elements, allow_headings=True)
        assert policy.transform("h1") == ("h1",)

    def test_element_kinds(self) -> None:
        assert DEFAULT_POLICY.is_void("br")
        assert DEFAULT_POLICY.is_inline("br")
        assert DEFAULT_POLICY.is_void("hr")
        assert not DEFAULT_POLICY.is_inline("hr")
        assert DEFAULT_POLICY.is_inline("a")
        assert not DEFAULT_POLICY.is_inline("span")


class TestAttributes(unittest.TestCase):
    def test_per_tag_then_global(self) -> None:
        assert DEFAULT_POLICY.attributes_for("a") == ("href", "name", "title", "rel", "rev", "class")
        assert DEFAULT_POLICY.attributes_for("p") == ("class",)
        assert DEFAULT_POLICY.attributes_for("span") == ()

    def test_global_attribute_not_repeated(self) -> None:
        policy = PurifyPolicy(
            elements={"p": ElementRule(attributes=("class", "title"))},
            global_attributes=("class",),
        )
        assert policy.attributes_for("p") == ("class", "title")

    def test_urls(self) -> None:
        allowed = [
            "http://example.com/",
            "HTTPS://example.com/",
            "mailto:someone@example.com",
            "ftp://files.example.com/",
            "/relative/path:with-colon",
            "page.html",
            "?q=a:b",
            "#top",
        ]
        rejected = [
            "javascript:alert(1)",
            " java\tscript:alert(1)",
            "JaVaScRiPt:alert(1)",
            "data:text/html;base64,AAAA",
            "vbscript:msgbox",
            "//evil.example.com/",
            "",
            "   ",
        ]
        for url in allowed:
            assert DEFAULT_POLICY.allows_url(url), url
        for url in rejected:
            assert not DEFAULT_POLICY.allows_url(url), url


class TestPolicyValidation(unittest.TestCase):
    def test_negative_indent_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PurifyPolicy(elements={}, indent_size=-1)

    def test_elements_table_is_a_private_copy(self) -> None:
        source = {"p": ElementRule()}
        policy = PurifyPolicy(elements=source)
        source["span"] = ElementRule()
        assert policy.rule_for("span") is None
        with self.assertRaises(TypeError):
            policy.elements["span"] = ElementRule()  # type: ignore[index]

        derived = PurifyPolicy(elements=DEFAULT_POLICY.elements, allow_headings=True)
        assert derived.elements is not DEFAULT_POLICY.elements
        assert dict(derived.elements) == dict(DEFAULT_POLICY.elements)

    def test_schemes_are_lowercased(self) -> None:
        policy = PurifyPolicy(elements={}, allowed_url_schemes=["HTTP"])
        assert policy.allowed_url_schemes == frozenset({"http"})
        assert policy.allows_url("http://example.com/")


class TestCustomPolicy(unittest.TestCase):
    def test_custom_rename(self) -> None:
        policy = PurifyPolicy(
            elements={
                "p": ElementRule(),
                "em": ElementRule(inline=True),
                "u": ElementRule(rename_to="em", inline=True),
            },
        )
        assert purify("<u>x</u> <b>y</b>", policy=policy) == "<p>\n  <em>x</em> y\n</p>"

    def test_custom_drop_content(self) -> None:
        policy = PurifyPolicy(elements=DEFAULT_POLICY.elements, drop_content_tags={"code"})
        assert purify("see <code>secret</code> here", policy=policy) == "<p>\n  see here\n</p>"


if __name__ == "__main__":
    unittest.main()
