"""Tests for insertion modes and tree repair."""

from __future__ import annotations

import contextlib
import io
import unittest

from xhtmlpurifier import DEFAULT_POLICY, PurifyPolicy
from xhtmlpurifier.node import ElementNode, TextNode
from xhtmlpurifier.tokenizer import Tokenizer
from xhtmlpurifier.tokens import CharacterTokens, EOFToken, ParseError, Tag
from xhtmlpurifier.treebuilder import InsertionMode, TreeBuilder


def _build(html, policy=None):
    builder = TreeBuilder(policy=policy)
    Tokenizer(builder).run(html)
    return builder


def _stack_names(builder):
    return [node.name for node in builder.open_elements]


class TestInsertionModes(unittest.TestCase):
    def test_starts_in_body_with_default_paragraph(self) -> None:
        builder = TreeBuilder()
        assert builder.mode == InsertionMode.IN_BODY
        assert _stack_names(builder) == ["#document-fragment", "p"]

    def test_table_modes(self) -> None:
        cases = {
            "<table>": InsertionMode.IN_TABLE,
            "<table><caption>": InsertionMode.IN_CAPTION,
            "<table><colgroup>": InsertionMode.IN_COLUMN_GROUP,
            "<table><col>": InsertionMode.IN_COLUMN_GROUP,
            "<table><tbody>": InsertionMode.IN_TABLE_BODY,
            "<table><tr>": InsertionMode.IN_ROW,
            "<table><td>": InsertionMode.IN_CELL,
            "<table></table>": InsertionMode.IN_BODY,
        }
        for html, mode in cases.items():
            assert _build(html).mode == mode, html

    def test_nested_table_returns_to_cell(self) -> None:
        builder = _build("<table><tr><td><table></table>")
        assert builder.mode == InsertionMode.IN_CELL
        assert _stack_names(builder) == ["#document-fragment", "table", "tbody", "tr", "td"]

    def test_stray_row_end_inside_nested_table_is_ignored(self) -> None:
        builder = _build("<table><tr><td><table></tr>")
        assert builder.mode == InsertionMode.IN_TABLE
        assert _stack_names(builder) == ["#document-fragment", "table", "tbody", "tr", "td", "table"]
        assert ParseError("unexpected-end-tag", "tr") in builder.errors

    def test_missing_table_sections_are_implied(self) -> None:
        builder = _build("<table><td>x")
        root = builder.finish()
        assert root.to_test_format() == (
            '| <table>\n|   <tbody>\n|     <tr>\n|       <td>\n|         "x"'
        )

    def test_col_outside_colgroup_gets_one(self) -> None:
        root = _build("<table><col span=2><tr><td>a").finish()
        assert root.to_test_format() == (
            "| <table>\n"
            "|   <colgroup>\n"
            "|     <col>\n"
            '|       span="2"\n'
            "|   <tbody>\n"
            "|     <tr>\n"
            "|       <td>\n"
            '|         "a"'
        )

    def test_whitespace_between_table_parts_is_ignored(self) -> None:
        root = _build("<table> <tr> <td>x</td> </tr> </table>").finish()
        texts = []
        pending = [root]
        while pending:
            node = pending.pop()
            for child in node.children:
                if isinstance(child, TextNode):
                    texts.append(child.data)
                else:
                    pending.append(child)
        assert texts == ["x"]

    def test_cell_closed_over_open_formatting(self) -> None:
        builder = _build("<table><tr><td><em>x</td>")
        assert builder.mode == InsertionMode.IN_ROW
        assert ParseError("unexpected-open-element", "td") in builder.errors
        assert _stack_names(builder)[-1] == "tr"


class TestBodyRepair(unittest.TestCase):
    def test_block_end_abandoned_when_list_is_open(self) -> None:
        builder = TreeBuilder()
        for token in [
            Tag(Tag.START, "blockquote"),
            Tag(Tag.START, "ul"),
            Tag(Tag.START, "li"),
            CharacterTokens("x"),
            Tag(Tag.END, "blockquote"),
        ]:
            builder.process_token(token)
        assert _stack_names(builder) == ["#document-fragment", "blockquote", "ul"]
        assert ParseError("unexpected-open-element", "blockquote") in builder.errors

    def test_stray_list_item_end(self) -> None:
        builder = TreeBuilder()
        builder.process_token(Tag(Tag.END, "li"))
        assert builder.errors == [ParseError("unexpected-end-tag", "li")]

    def test_end_br_inserts_a_break(self) -> None:
        builder = TreeBuilder()
        builder.process_token(CharacterTokens("a"))
        builder.process_token(Tag(Tag.END, "br"))
        builder.process_token(CharacterTokens("b"))
        paragraph = builder.finish().children[0]
        assert [child.name for child in paragraph.children] == ["#text", "br", "#text"]

    def test_misnested_formatting_is_reopened(self) -> None:
        builder = _build("<strong><em>x</strong>y")
        assert ParseError("misnested-formatting-element", "strong") in builder.errors
        paragraph = builder.finish().children[0]
        assert [child.name for child in paragraph.children] == ["strong", "em"]
        assert paragraph.children[1].children[0].data == "y"

    def test_nested_headings_close_the_outer_one(self) -> None:
        policy = PurifyPolicy(elements=DEFAULT_POLICY.elements, allow_headings=True)
        builder = _build("<h1><h2>x</h2>", policy=policy)
        assert ParseError("nested-heading", "h2") in builder.errors
        assert [child.name for child in builder.finish().children] == ["h2"]

    def test_heading_expands_to_paragraph_and_strong(self) -> None:
        root = _build("<h3>Title</h3>").finish()
        assert root.to_test_format() == '| <p>\n|   <strong>\n|     "Title"'

    def test_disallowed_and_dropped_tags_are_reported(self) -> None:
        builder = _build("<span>a</span><script>b</script>")
        assert ParseError("disallowed-tag", "span") in builder.errors
        assert ParseError("dropped-content", "script") in builder.errors

    def test_excluded_element(self) -> None:
        builder = _build('<pre><img src="a.png"></pre>')
        assert ParseError("excluded-element", "img") in builder.errors

    def test_consecutive_breaks_outside_paragraph(self) -> None:
        builder = _build("<ul><li>a<br><br>b</li></ul>")
        assert ParseError("consecutive-br") in builder.errors
        item = builder.finish().children[0].children[0]
        assert [child.name for child in item.children] == ["#text", "p"]
        assert item.children[1].children[0].data == "b"

    def test_consecutive_breaks_in_cell_close_inline_elements(self) -> None:
        builder = _build("<table><tr><td><em>a<br><br>b</em></td></tr></table>")
        cell = builder.finish().children[0].children[0].children[0].children[0]
        assert cell.name == "td"
        assert [child.name for child in cell.children] == ["em", "p"]
        paragraph = cell.children[1]
        assert paragraph.children[0].name == "em"
        assert paragraph.children[0].children[0].data == "b"

    def test_identical_formatting_entries_are_capped(self) -> None:
        builder = _build("<em>" * 5 + "<p>x</p>")
        assert len(builder.active_formatting) == 3
        builder = _build('<em class="a"><em><em><em>')
        assert len(builder.active_formatting) == 4

    def test_finish_prunes_unclosed_empty_elements(self) -> None:
        root = _build("<ul><li>").finish()
        assert root.children == []

    def test_pruning_keeps_void_content(self) -> None:
        root = _build("<ul><li><img src=a.png></li></ul>").finish()
        item = root.children[0].children[0]
        assert isinstance(item.children[0], ElementNode)
        assert item.children[0].name == "img"


class TestAbort(unittest.TestCase):
    def test_eof_error_stops_processing(self) -> None:
        builder = TreeBuilder()
        builder.process_token(CharacterTokens("kept"))
        builder.process_token(EOFToken("eof-in-tag"))
        builder.process_token(CharacterTokens("ignored"))
        assert builder.aborted
        assert builder.errors == [ParseError("eof-in-tag")]
        paragraph = builder.finish().children[0]
        assert [child.data for child in paragraph.children] == ["kept"]

    def test_clean_eof_does_not_abort(self) -> None:
        builder = TreeBuilder()
        builder.process_token(EOFToken())
        assert not builder.aborted


class TestDebug(unittest.TestCase):
    def test_debug_prints_mode_transitions(self) -> None:
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            builder = TreeBuilder(debug=True)
            Tokenizer(builder).run("<table><tr><td>x")
        text = output.getvalue()
        assert "IN_BODY" in text
        assert "mode IN_BODY -> IN_TABLE" in text
        assert "IN_CELL" in text

    def test_silent_without_debug(self) -> None:
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            _build("<table><tr><td>x")
        assert output.getvalue() == ""


if __name__ == "__main__":
    unittest.main()
