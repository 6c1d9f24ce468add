import enum
import re

from .constants import (
    CAPTION_CLOSING_START_TAGS,
    CAPTION_IGNORED_END_TAGS,
    CELL_CLOSING_END_TAGS,
    CELL_IGNORED_END_TAGS,
    DEFAULT_SCOPE_TERMINATORS,
    FORMAT_MARKER,
    FORMATTING_ELEMENTS,
    HEADING_ELEMENTS,
    IMPLIED_END_TAGS,
    LIST_ITEM_SCOPE_TERMINATORS,
    ROW_CLOSING_START_TAGS,
    ROW_IGNORED_END_TAGS,
    SECTION_CLOSING_START_TAGS,
    SECTION_IGNORED_END_TAGS,
    TABLE_BODY_CONTEXT,
    TABLE_CELL_TAGS,
    TABLE_CONTEXT,
    TABLE_ROW_CONTEXT,
    TABLE_SCOPE_TERMINATORS,
    TABLE_SECTION_TAGS,
    TABLE_STRUCTURE_TAGS,
)
from .node import ElementNode, TextNode
from .policy import DEFAULT_POLICY
from .tokens import CharacterTokens, CommentToken, EOFToken, ParseError, Tag


class InsertionMode(enum.IntEnum):
    IN_BODY = 0
    IN_TABLE = 1
    IN_CAPTION = 2
    IN_COLUMN_GROUP = 3
    IN_TABLE_BODY = 4
    IN_ROW = 5
    IN_CELL = 6


# One or more blank lines
_PARAGRAPH_BREAK = re.compile(r"\n[ \t\r\f]*\n\s*")
_COLLAPSIBLE_WHITESPACE = re.compile(r"[ \t\n\r\f]+")
_ASCII_WHITESPACE = " \t\n\r\f"


def _is_all_whitespace(text):
    return not text or text.isspace()


class TreeBuilder:
    """Builds a purified element tree from a token stream.

    The builder starts with a synthetic root holding one default paragraph and
    is driven by `process_token`. Every token is first passed through the
    policy (dropped, renamed or expanded) and then handed to the handler of
    the current insertion mode. Handlers return their transition: None to
    stay, an InsertionMode to switch, or ``("reprocess", mode, token)`` to
    switch and dispatch the token again.
    """

    __slots__ = (
        "aborted",
        "active_formatting",
        "debug_enabled",
        "document",
        "errors",
        "mode",
        "open_elements",
        "policy",
        "skip_content_tag",
    )

    def __init__(self, policy=None, debug=False):
        self.policy = policy or DEFAULT_POLICY
        self.debug_enabled = bool(debug)
        self.document = ElementNode("#document-fragment")
        self.mode = InsertionMode.IN_BODY
        self.errors = []
        self.active_formatting = []
        self.skip_content_tag = None
        self.aborted = False
        paragraph = ElementNode("p")
        self.document.append_child(paragraph)
        self.open_elements = [self.document, paragraph]

    def debug(self, message, indent=4):
        if self.debug_enabled:
            print(f"{' ' * indent}{message}")

    def _parse_error(self, code, detail=None):
        self.errors.append(ParseError(code, detail))

    def process_token(self, token):
        if self.aborted or isinstance(token, CommentToken):
            return

        if isinstance(token, EOFToken):
            if token.error is not None:
                self._parse_error(token.error)
                self.aborted = True
                if self.debug_enabled:
                    self.debug(f"tokenizer gave up: {token.error}", indent=0)
            return

        if self.skip_content_tag is not None:
            if isinstance(token, Tag) and token.kind == Tag.END and token.name == self.skip_content_tag:
                self.skip_content_tag = None
            return

        if not isinstance(token, Tag):
            self._dispatch(token)
            return

        name = token.name
        if name in self.policy.drop_content_tags:
            if token.kind == Tag.START and not token.self_closing:
                self.skip_content_tag = name
            self._parse_error("dropped-content", name)
            return

        names = self.policy.transform(name)
        if not names:
            self._parse_error("disallowed-tag", name)
            return
        if token.kind == Tag.END:
            names = names[::-1]
        for target in names:
            self._dispatch(token if target == name else token.renamed(target))

    def finish(self):
        """Strip elements left empty and return the root."""
        order = []
        pending = [self.document]
        while pending:
            node = pending.pop()
            for child in node.children:
                if isinstance(child, ElementNode):
                    order.append(child)
                    pending.append(child)
        # Reversed pre-order visits descendants before their ancestors
        for node in reversed(order):
            if node.parent is not None and not node.has_content():
                node.parent.remove_child(node)
        return self.document

    # Insertion mode dispatch ------------------------------------------------

    def _dispatch(self, token):
        mode = self.mode
        handlers = self._MODE_HANDLERS
        while True:
            if self.debug_enabled:
                self.debug(f"{mode.name}: {token!r}")
            result = handlers[mode](self, token)
            if result is None:
                break
            if isinstance(result, InsertionMode):
                mode = result
                break
            instruction, mode, token = result
            if instruction != "reprocess":
                break
        if mode != self.mode:
            if self.debug_enabled:
                self.debug(f"mode {self.mode.name} -> {mode.name}", indent=2)
            self.mode = mode

    def _mode_in_body(self, token):
        handler = self._BODY_TOKEN_HANDLERS.get(type(token))
        if handler:
            return handler(self, token)
        return None

    def _handle_characters_in_body(self, token):
        data = token.data
        if not data:
            return None

        chunks = [chunk for chunk in _PARAGRAPH_BREAK.split(data) if not _is_all_whitespace(chunk)]
        if len(chunks) > 1:
            # Loose blank-line separated text becomes one paragraph per chunk
            for chunk in chunks:
                self._handle_body_start_block(_PARAGRAPH_START)
                self._reconstruct_active_formatting_elements()
                self._append_text(_COLLAPSIBLE_WHITESPACE.sub(" ", chunk.strip(_ASCII_WHITESPACE)))
                self._handle_body_end_p(_PARAGRAPH_END)
            return None

        text = _COLLAPSIBLE_WHITESPACE.sub(" ", data)
        if _is_all_whitespace(text):
            parent = self._current_node()
            if parent is self.document:
                return None
            if parent.children:
                last = parent.children[-1]
                if isinstance(last, ElementNode) and last.name == "br":
                    return None
            self._append_text(text)
            return None

        self._ensure_inline_container()
        self._reconstruct_active_formatting_elements()
        self._append_text(text)
        return None

    def _handle_tag_in_body(self, token):
        name = token.name
        if token.kind == Tag.START:
            handler = self._BODY_START_HANDLERS.get(name)
            if handler is None:
                handler = TreeBuilder._handle_body_start_default
            if name != "a" and self._is_excluded(name):
                self._parse_error("excluded-element", name)
                return None
            return handler(self, token)

        # </br> is treated as <br>
        if name == "br":
            self._parse_error("unexpected-end-tag", name)
            return self._handle_body_start_br(Tag(Tag.START, "br", {}, True))

        if name in FORMATTING_ELEMENTS:
            self._end_formatting_element(name)
            return None
        handler = self._BODY_END_HANDLERS.get(name)
        if handler:
            return handler(self, token)
        if self.policy.is_void(name):
            self._parse_error("unexpected-end-tag", name)
            return None
        if self.policy.is_inline(name):
            self._any_other_end_tag(name)
            return None
        return self._handle_body_end_block(token)

    # ---------------------
    # Body mode start tag handlers
    # ---------------------

    def _handle_body_start_block(self, token):
        self._close_p_element()
        self._pop_inline_elements()
        self._insert_element(token.name, token.attrs)
        return None

    def _handle_body_start_heading(self, token):
        self._close_p_element()
        self._pop_inline_elements()
        if self._current_node().name in HEADING_ELEMENTS:
            self._parse_error("nested-heading", token.name)
            self._pop_current()
        self._insert_element(token.name, token.attrs)
        return None

    def _handle_body_start_li(self, token):
        if self._has_in_list_item_scope("li"):
            self._close_block_to("li")
        return self._handle_body_start_block(token)

    def _handle_body_start_hr(self, token):
        self._close_p_element()
        self._pop_inline_elements()
        self._insert_element(token.name, token.attrs, push=False)
        return None

    def _handle_body_start_table(self, token):
        self._close_p_element()
        self._pop_inline_elements()
        self._insert_element(token.name, token.attrs)
        return InsertionMode.IN_TABLE

    def _handle_body_start_br(self, token):
        self._ensure_inline_container()
        self._reconstruct_active_formatting_elements()
        parent = self._current_node()
        previous = parent.last_significant_child()
        if previous is None:
            self._parse_error("br-in-empty-container")
            return None
        if isinstance(previous, ElementNode) and previous.name == "br":
            # Two breaks in a row start a new paragraph instead
            self._parse_error("consecutive-br")
            parent.remove_child(previous)
            if self._in_scope("p"):
                self._close_p_element()
            else:
                self._pop_inline_elements()
            self._insert_element("p")
            return None
        self._insert_element(token.name, token.attrs, push=False)
        return None

    def _handle_body_start_void_inline(self, token):
        self._ensure_inline_container()
        self._reconstruct_active_formatting_elements()
        self._insert_element(token.name, token.attrs, push=False)
        return None

    def _handle_body_start_inline(self, token):
        self._ensure_inline_container()
        self._reconstruct_active_formatting_elements()
        self._insert_element(token.name, token.attrs)
        return None

    def _handle_body_start_formatting(self, token):
        self._ensure_inline_container()
        self._reconstruct_active_formatting_elements()
        node = self._insert_element(token.name, token.attrs)
        self._push_active_formatting(node)
        return None

    def _handle_body_start_a(self, token):
        if self._find_active_formatting("a") is not None:
            self._parse_error("unexpected-start-tag-implies-end-tag", "a")
            self._end_formatting_element("a")
            entry = self._find_active_formatting("a")
            if entry is not None:
                self.active_formatting.remove(entry)
        if self._is_excluded("a"):
            self._parse_error("excluded-element", "a")
            return None
        return self._handle_body_start_formatting(token)

    def _handle_body_start_structure_ignored(self, token):
        self._parse_error("unexpected-start-tag-ignored", token.name)
        return None

    def _handle_body_start_default(self, token):
        name = token.name
        if self.policy.is_void(name):
            if self.policy.is_inline(name):
                return self._handle_body_start_void_inline(token)
            return self._handle_body_start_hr(token)
        if self.policy.is_inline(name):
            return self._handle_body_start_inline(token)
        return self._handle_body_start_block(token)

    # ---------------------
    # Body mode end tag handlers
    # ---------------------

    def _handle_body_end_p(self, token):
        if not self._in_scope("p"):
            self._parse_error("unexpected-end-tag", "p")
            return None
        self._close_block_to("p")
        return None

    def _handle_body_end_li(self, token):
        if not self._has_in_list_item_scope("li"):
            self._parse_error("unexpected-end-tag", "li")
            return None
        self._close_block_to("li")
        return None

    def _handle_body_end_block(self, token):
        name = token.name
        if not self._in_scope(name):
            self._parse_error("unexpected-end-tag", name)
            return None
        self._close_block_to(name)
        return None

    def _handle_body_end_ignored(self, token):
        self._parse_error("unexpected-end-tag", token.name)
        return None

    def _end_formatting_element(self, name):
        entry = self._find_active_formatting(name)
        if entry is None:
            self._parse_error("unexpected-end-tag", name)
            return
        if entry not in self.open_elements:
            self._parse_error("formatting-element-not-open", name)
            self.active_formatting.remove(entry)
            return
        if not self._node_in_scope(entry):
            self._parse_error("formatting-element-not-in-scope", name)
            return
        if self._current_node() is not entry:
            self._parse_error("misnested-formatting-element", name)
        self._pop_until_node(entry)
        self.active_formatting.remove(entry)

    def _any_other_end_tag(self, name):
        for node in reversed(self.open_elements):
            if node.name == name:
                self._pop_until_node(node)
                return
            if not self.policy.is_inline(node.name):
                self._parse_error("unexpected-end-tag", name)
                return

    # ---------------------
    # Table modes
    # ---------------------

    def _mode_in_table(self, token):
        if isinstance(token, CharacterTokens):
            if _is_all_whitespace(token.data):
                return None
            self._parse_error("unexpected-character-in-table")
            return self._mode_in_body(token)

        name = token.name
        if token.kind == Tag.START:
            if name == "caption":
                self._clear_stack_until(TABLE_CONTEXT)
                self._push_formatting_marker()
                self._insert_element(name, token.attrs)
                return InsertionMode.IN_CAPTION
            if name == "colgroup":
                self._clear_stack_until(TABLE_CONTEXT)
                self._insert_element(name, token.attrs)
                return InsertionMode.IN_COLUMN_GROUP
            if name == "col":
                self._clear_stack_until(TABLE_CONTEXT)
                self._insert_element("colgroup")
                return ("reprocess", InsertionMode.IN_COLUMN_GROUP, token)
            if name in TABLE_SECTION_TAGS:
                self._clear_stack_until(TABLE_CONTEXT)
                self._insert_element(name, token.attrs)
                return InsertionMode.IN_TABLE_BODY
            if name == "tr" or name in TABLE_CELL_TAGS:
                self._clear_stack_until(TABLE_CONTEXT)
                self._insert_element("tbody")
                return ("reprocess", InsertionMode.IN_TABLE_BODY, token)
            if name == "table":
                self._parse_error("unexpected-start-tag-implies-end-tag", name)
                mode = self._close_table_element()
                if mode is None:
                    return None
                return ("reprocess", mode, token)
            self._parse_error("unexpected-start-tag-in-table", name)
            return self._mode_in_body(token)

        if name == "table":
            return self._close_table_element()
        if name in TABLE_STRUCTURE_TAGS:
            self._parse_error("unexpected-end-tag", name)
            return None
        self._parse_error("unexpected-end-tag-in-table", name)
        return self._mode_in_body(token)

    def _mode_in_caption(self, token):
        if isinstance(token, CharacterTokens):
            return self._mode_in_body(token)

        name = token.name
        if token.kind == Tag.END and name == "caption":
            if not self._has_in_table_scope("caption"):
                self._parse_error("unexpected-end-tag", name)
                return None
            self._close_caption_element()
            return InsertionMode.IN_TABLE
        if (token.kind == Tag.START and name in CAPTION_CLOSING_START_TAGS) or (
            token.kind == Tag.END and name == "table"
        ):
            if not self._has_in_table_scope("caption"):
                self._parse_error("unexpected-tag-in-caption", name)
                return None
            self._close_caption_element()
            return ("reprocess", InsertionMode.IN_TABLE, token)
        if token.kind == Tag.END and name in CAPTION_IGNORED_END_TAGS:
            self._parse_error("unexpected-end-tag", name)
            return None
        return self._mode_in_body(token)

    def _mode_in_column_group(self, token):
        current = self._current_node()
        if isinstance(token, CharacterTokens):
            if _is_all_whitespace(token.data):
                return None
        else:
            name = token.name
            if token.kind == Tag.START and name == "col":
                self._insert_element(name, token.attrs, push=False)
                return None
            if token.kind == Tag.END and name == "colgroup":
                if current.name != "colgroup":
                    self._parse_error("unexpected-end-tag", name)
                    return None
                self._pop_current()
                return InsertionMode.IN_TABLE
            if token.kind == Tag.END and name == "col":
                self._parse_error("unexpected-end-tag", name)
                return None

        # Anything else closes the column group
        if current.name != "colgroup":
            self._parse_error("unexpected-token-in-column-group")
            return None
        self._pop_current()
        return ("reprocess", InsertionMode.IN_TABLE, token)

    def _mode_in_table_body(self, token):
        if isinstance(token, CharacterTokens):
            return self._mode_in_table(token)

        name = token.name
        if token.kind == Tag.START:
            if name == "tr":
                self._clear_stack_until(TABLE_BODY_CONTEXT)
                self._insert_element(name, token.attrs)
                return InsertionMode.IN_ROW
            if name in TABLE_CELL_TAGS:
                self._parse_error("unexpected-cell-in-table-body", name)
                self._clear_stack_until(TABLE_BODY_CONTEXT)
                self._insert_element("tr")
                return ("reprocess", InsertionMode.IN_ROW, token)
            if name in SECTION_CLOSING_START_TAGS:
                return self._close_table_section(token)
            return self._mode_in_table(token)

        if name in TABLE_SECTION_TAGS:
            if not self._has_in_table_scope(name):
                self._parse_error("unexpected-end-tag", name)
                return None
            self._end_table_section()
            return InsertionMode.IN_TABLE
        if name == "table":
            return self._close_table_section(token)
        if name in SECTION_IGNORED_END_TAGS:
            self._parse_error("unexpected-end-tag", name)
            return None
        return self._mode_in_table(token)

    def _mode_in_row(self, token):
        if isinstance(token, CharacterTokens):
            return self._mode_in_table(token)

        name = token.name
        if token.kind == Tag.START:
            if name in TABLE_CELL_TAGS:
                self._clear_stack_until(TABLE_ROW_CONTEXT)
                self._insert_element(name, token.attrs)
                self._push_formatting_marker()
                return InsertionMode.IN_CELL
            if name in ROW_CLOSING_START_TAGS:
                if not self._has_in_table_scope("tr"):
                    self._parse_error("unexpected-start-tag", name)
                    return None
                self._end_tr_element()
                return ("reprocess", InsertionMode.IN_TABLE_BODY, token)
            return self._mode_in_table(token)

        if name == "tr":
            if not self._has_in_table_scope("tr"):
                self._parse_error("unexpected-end-tag", name)
                return None
            self._end_tr_element()
            return InsertionMode.IN_TABLE_BODY
        if name == "table":
            if not self._has_in_table_scope("tr"):
                self._parse_error("unexpected-end-tag", name)
                return None
            self._end_tr_element()
            return ("reprocess", InsertionMode.IN_TABLE_BODY, token)
        if name in TABLE_SECTION_TAGS:
            if not self._has_in_table_scope(name):
                self._parse_error("unexpected-end-tag", name)
                return None
            if not self._has_in_table_scope("tr"):
                return None
            self._end_tr_element()
            return ("reprocess", InsertionMode.IN_TABLE_BODY, token)
        if name in ROW_IGNORED_END_TAGS:
            self._parse_error("unexpected-end-tag", name)
            return None
        return self._mode_in_table(token)

    def _mode_in_cell(self, token):
        if isinstance(token, CharacterTokens):
            return self._mode_in_body(token)

        name = token.name
        if token.kind == Tag.START:
            if name in CAPTION_CLOSING_START_TAGS:
                if not self._close_table_cell():
                    self._parse_error("unexpected-start-tag", name)
                    return None
                return ("reprocess", InsertionMode.IN_ROW, token)
            return self._mode_in_body(token)

        if name in TABLE_CELL_TAGS:
            if not self._has_in_table_scope(name):
                self._parse_error("unexpected-end-tag", name)
                return None
            self._end_table_cell(name)
            return InsertionMode.IN_ROW
        if name in CELL_CLOSING_END_TAGS:
            if not self._has_in_table_scope(name):
                self._parse_error("unexpected-end-tag", name)
                return None
            self._close_table_cell()
            return ("reprocess", InsertionMode.IN_ROW, token)
        if name in CELL_IGNORED_END_TAGS:
            self._parse_error("unexpected-end-tag", name)
            return None
        return self._mode_in_body(token)

    # ---------------------
    # Table helpers
    # ---------------------

    def _close_caption_element(self):
        self._generate_implied_end_tags()
        if self._current_node().name != "caption":
            self._parse_error("unexpected-open-element", "caption")
        self._pop_until_inclusive("caption")
        self._clear_active_formatting_up_to_marker()

    def _close_table_element(self):
        """Pop through the table; returns the resumed mode or None."""
        if not self._has_in_table_scope("table"):
            self._parse_error("unexpected-end-tag", "table")
            return None
        self._pop_until_inclusive("table")
        return self._reset_insertion_mode()

    def _close_table_section(self, token):
        if not (
            self._has_in_table_scope("tbody")
            or self._has_in_table_scope("thead")
            or self._has_in_table_scope("tfoot")
        ):
            self._parse_error("unexpected-tag-in-table-body", token.name)
            return None
        self._end_table_section()
        return ("reprocess", InsertionMode.IN_TABLE, token)

    def _end_table_section(self):
        self._clear_stack_until(TABLE_BODY_CONTEXT)
        if self._current_node().name in TABLE_SECTION_TAGS:
            self._pop_current()

    def _end_tr_element(self):
        self._clear_stack_until(TABLE_ROW_CONTEXT)
        if self._current_node().name == "tr":
            self._pop_current()

    def _close_table_cell(self):
        if self._has_in_table_scope("td"):
            self._end_table_cell("td")
            return True
        if self._has_in_table_scope("th"):
            self._end_table_cell("th")
            return True
        return False

    def _end_table_cell(self, name):
        self._generate_implied_end_tags(name)
        if self._current_node().name != name:
            self._parse_error("unexpected-open-element", name)
        self._pop_until_inclusive(name)
        self._clear_active_formatting_up_to_marker()

    def _reset_insertion_mode(self):
        for index in range(len(self.open_elements) - 1, -1, -1):
            name = self.open_elements[index].name
            if name in TABLE_CELL_TAGS and index > 0:
                return InsertionMode.IN_CELL
            if name == "tr":
                return InsertionMode.IN_ROW
            if name in TABLE_SECTION_TAGS:
                return InsertionMode.IN_TABLE_BODY
            if name == "caption":
                return InsertionMode.IN_CAPTION
            if name == "colgroup":
                return InsertionMode.IN_COLUMN_GROUP
            if name == "table":
                return InsertionMode.IN_TABLE
        return InsertionMode.IN_BODY

    # ---------------------
    # Stack helpers
    # ---------------------

    def _current_node(self):
        if self.open_elements:
            return self.open_elements[-1]
        return self.document

    def _insert_element(self, name, attrs=None, push=True):
        node = ElementNode(name, dict(attrs) if attrs else {}, self.policy.is_void(name))
        self._current_node().append_child(node)
        if push:
            self.open_elements.append(node)
        return node

    def _ensure_inline_container(self):
        if self._current_node() is self.document:
            self._insert_element("p")

    def _append_text(self, text):
        parent = self._current_node()
        if parent.children:
            last = parent.children[-1]
            if isinstance(last, TextNode):
                if last.data[-1:].isspace():
                    text = text.lstrip(_ASCII_WHITESPACE)
            elif last.name == "br":
                text = text.lstrip(_ASCII_WHITESPACE)
        if text:
            parent.append_child(TextNode(text))

    def _pop_current(self):
        # The root is never popped
        if len(self.open_elements) <= 1:
            return None
        node = self.open_elements.pop()
        if node.parent is not None and not node.has_content():
            node.parent.remove_child(node)
        return node

    def _pop_until_inclusive(self, name):
        while len(self.open_elements) > 1:
            node = self._pop_current()
            if node.name == name:
                break

    def _pop_until_node(self, target):
        while len(self.open_elements) > 1:
            if self._pop_current() is target:
                break

    def _pop_inline_elements(self):
        while len(self.open_elements) > 1 and self.policy.is_inline(self.open_elements[-1].name):
            self._pop_current()

    def _clear_stack_until(self, names):
        while len(self.open_elements) > 1 and self.open_elements[-1].name not in names:
            self._pop_current()

    def _generate_implied_end_tags(self, exclude=None):
        while len(self.open_elements) > 1:
            name = self.open_elements[-1].name
            if name in IMPLIED_END_TAGS and name != exclude:
                self._pop_current()
                continue
            break

    def _close_p_element(self):
        if self._in_scope("p"):
            return self._close_block_to("p")
        return False

    def _close_block_to(self, name):
        """Close `name` through implied-end and inline elements above it.

        Abandons the close when anything else sits on top of it.
        """
        while len(self.open_elements) > 1:
            current = self.open_elements[-1].name
            if current == name:
                self._pop_current()
                return True
            if current in IMPLIED_END_TAGS or self.policy.is_inline(current):
                self._pop_current()
                continue
            break
        self._parse_error("unexpected-open-element", name)
        return False

    def _is_excluded(self, name):
        for node in reversed(self.open_elements):
            rule = self.policy.rule_for(node.name)
            if rule is not None and name in rule.excludes:
                return True
        return False

    def _has_element_in_scope(self, target, terminators=DEFAULT_SCOPE_TERMINATORS):
        for node in reversed(self.open_elements):
            if node.name == target:
                return True
            if node.name in terminators:
                return False
        return False

    def _in_scope(self, name):
        return self._has_element_in_scope(name)

    def _has_in_list_item_scope(self, name):
        return self._has_element_in_scope(name, LIST_ITEM_SCOPE_TERMINATORS)

    def _has_in_table_scope(self, name):
        return self._has_element_in_scope(name, TABLE_SCOPE_TERMINATORS)

    def _node_in_scope(self, target):
        for node in reversed(self.open_elements):
            if node is target:
                return True
            if node.name in DEFAULT_SCOPE_TERMINATORS:
                return False
        return False

    # ---------------------
    # Active formatting elements
    # ---------------------

    def _find_active_formatting(self, name):
        for entry in reversed(self.active_formatting):
            if entry is FORMAT_MARKER:
                return None
            if entry.name == name:
                return entry
        return None

    def _push_active_formatting(self, node):
        # At most three identical entries after the last marker; the earliest goes
        matches = []
        for entry in reversed(self.active_formatting):
            if entry is FORMAT_MARKER:
                break
            if entry.name == node.name and entry.attrs == node.attrs:
                matches.append(entry)
        if len(matches) >= 3:
            self.active_formatting.remove(matches[-1])
        self.active_formatting.append(node)

    def _push_formatting_marker(self):
        self.active_formatting.append(FORMAT_MARKER)

    def _clear_active_formatting_up_to_marker(self):
        while self.active_formatting:
            if self.active_formatting.pop() is FORMAT_MARKER:
                break

    def _reconstruct_active_formatting_elements(self):
        formatting = self.active_formatting
        if not formatting:
            return
        last_entry = formatting[-1]
        if last_entry is FORMAT_MARKER or last_entry in self.open_elements:
            return

        index = len(formatting) - 1
        while index > 0:
            entry = formatting[index - 1]
            if entry is FORMAT_MARKER or entry in self.open_elements:
                break
            index -= 1
        while index < len(formatting):
            clone = formatting[index].clone()
            self._current_node().append_child(clone)
            self.open_elements.append(clone)
            formatting[index] = clone
            if self.debug_enabled:
                self.debug(f"reopened <{clone.name}>", indent=6)
            index += 1

    _BODY_START_HANDLERS = {
        "a": _handle_body_start_a,
        "blockquote": _handle_body_start_block,
        "br": _handle_body_start_br,
        "caption": _handle_body_start_structure_ignored,
        "code": _handle_body_start_inline,
        "col": _handle_body_start_structure_ignored,
        "colgroup": _handle_body_start_structure_ignored,
        "em": _handle_body_start_formatting,
        "h1": _handle_body_start_heading,
        "h2": _handle_body_start_heading,
        "h3": _handle_body_start_heading,
        "h4": _handle_body_start_heading,
        "h5": _handle_body_start_heading,
        "h6": _handle_body_start_heading,
        "hr": _handle_body_start_hr,
        "img": _handle_body_start_void_inline,
        "li": _handle_body_start_li,
        "ol": _handle_body_start_block,
        "p": _handle_body_start_block,
        "pre": _handle_body_start_block,
        "strong": _handle_body_start_formatting,
        "table": _handle_body_start_table,
        "tbody": _handle_body_start_structure_ignored,
        "td": _handle_body_start_structure_ignored,
        "tfoot": _handle_body_start_structure_ignored,
        "th": _handle_body_start_structure_ignored,
        "thead": _handle_body_start_structure_ignored,
        "tr": _handle_body_start_structure_ignored,
        "ul": _handle_body_start_block,
    }
    _BODY_END_HANDLERS = {
        "blockquote": _handle_body_end_block,
        "caption": _handle_body_end_ignored,
        "col": _handle_body_end_ignored,
        "colgroup": _handle_body_end_ignored,
        "h1": _handle_body_end_block,
        "h2": _handle_body_end_block,
        "h3": _handle_body_end_block,
        "h4": _handle_body_end_block,
        "h5": _handle_body_end_block,
        "h6": _handle_body_end_block,
        "hr": _handle_body_end_ignored,
        "img": _handle_body_end_ignored,
        "li": _handle_body_end_li,
        "ol": _handle_body_end_block,
        "p": _handle_body_end_p,
        "pre": _handle_body_end_block,
        "table": _handle_body_end_ignored,
        "tbody": _handle_body_end_ignored,
        "td": _handle_body_end_ignored,
        "tfoot": _handle_body_end_ignored,
        "th": _handle_body_end_ignored,
        "thead": _handle_body_end_ignored,
        "tr": _handle_body_end_ignored,
        "ul": _handle_body_end_block,
    }
    _MODE_HANDLERS = [
        _mode_in_body,
        _mode_in_table,
        _mode_in_caption,
        _mode_in_column_group,
        _mode_in_table_body,
        _mode_in_row,
        _mode_in_cell,
    ]

    _BODY_TOKEN_HANDLERS = {
        CharacterTokens: _handle_characters_in_body,
        Tag: _handle_tag_in_body,
    }


_PARAGRAPH_START = Tag(Tag.START, "p")
_PARAGRAPH_END = Tag(Tag.END, "p")
