import re
import sys

from .constants import RAWTEXT_ELEMENTS, VOID_ELEMENTS
from .entities import decode_entities_in_text
from .tokens import CharacterTokens, CommentToken, EOFToken, Tag

_NAME = r"[a-zA-Z][\w:.-]*"
_ATTRIBUTE = r"""[^\s/>"'=]+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^>\s"']+))?"""

_START_TAG_PATTERN = re.compile(
    rf"""<({_NAME})((?:(?:\s+|(?<=["'])){_ATTRIBUTE})*)\s*(/?)>""",
)
_END_TAG_PATTERN = re.compile(rf"</({_NAME})[^>]*>")
_ATTRIBUTE_PATTERN = re.compile(r"""([^\s/>"'=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^>\s]+)))?""")
_TAG_NAME_START = re.compile(r"</?[a-zA-Z]")
_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})


class TokenizerOpts:
    __slots__ = ("discard_bom", "drop_unmatched_end_tags")

    def __init__(self, discard_bom=True, drop_unmatched_end_tags=True):
        self.discard_bom = bool(discard_bom)
        self.drop_unmatched_end_tags = bool(drop_unmatched_end_tags)


class Tokenizer:
    """Lenient markup lexer.

    Pushes Tag, CharacterTokens and CommentToken objects into ``sink`` in
    document order and always finishes with an EOFToken. Input it cannot make
    sense of (an unterminated tag or comment, an unclosed script/style body)
    ends the stream early with ``EOFToken(error=...)`` instead of raising.
    """

    DATA = 0
    RAWTEXT = 1

    __slots__ = (
        "buffer",
        "length",
        "open_names",
        "opts",
        "pos",
        "rawtext_tag_name",
        "sink",
        "state",
        "text_buffer",
    )

    def __init__(self, sink, opts=None):
        self.sink = sink
        self.opts = opts or TokenizerOpts()
        self.state = self.DATA
        self.buffer = ""
        self.length = 0
        self.pos = 0
        self.rawtext_tag_name = None
        self.open_names = []
        self.text_buffer = []

    def run(self, html):
        if html and html[0] == "\ufeff" and self.opts.discard_bom:
            html = html[1:]

        self.buffer = html or ""
        self.length = len(self.buffer)
        self.pos = 0
        self.state = self.DATA
        self.rawtext_tag_name = None
        self.open_names.clear()
        self.text_buffer.clear()

        while self.pos < self.length:
            if self.state == self.RAWTEXT:
                error = self._state_rawtext()
            else:
                error = self._state_data()
            if error:
                self._flush_text()
                self._emit_token(EOFToken(error))
                return
        self._flush_text()
        self._emit_token(EOFToken())

    # ---------------------
    # States
    # ---------------------

    def _state_data(self):
        buffer = self.buffer
        pos = self.pos
        lt = buffer.find("<", pos)
        if lt == -1:
            self._append_text_chunk(buffer[pos:])
            self.pos = self.length
            return None
        if lt > pos:
            self._append_text_chunk(buffer[pos:lt])
            self.pos = pos = lt

        if buffer.startswith("<!--", pos):
            end = buffer.find("-->", pos + 4)
            if end == -1:
                return "eof-in-comment"
            self._flush_text()
            self._emit_token(CommentToken(buffer[pos + 4:end]))
            self.pos = end + 3
            return None

        if buffer.startswith("<!", pos) or buffer.startswith("<?", pos):
            # Doctype, CDATA, processing instruction: all treated as bogus comments
            end = buffer.find(">", pos + 2)
            if end == -1:
                return "eof-in-declaration"
            self._flush_text()
            self._emit_token(CommentToken(buffer[pos + 2:end]))
            self.pos = end + 1
            return None

        if buffer.startswith("</", pos):
            match = _END_TAG_PATTERN.match(buffer, pos)
            if match:
                self.pos = match.end()
                self._emit_end_tag(self._lower(match.group(1)))
                return None
        else:
            match = _START_TAG_PATTERN.match(buffer, pos)
            if match:
                self.pos = match.end()
                self._emit_start_tag(
                    self._lower(match.group(1)), match.group(2), bool(match.group(3)),
                )
                return None

        if _TAG_NAME_START.match(buffer, pos):
            return self._recover_malformed_tag()

        # A lone "<" that cannot start a tag is text
        self._append_text_chunk("<")
        self.pos = pos + 1
        return None

    def _state_rawtext(self):
        name = self.rawtext_tag_name
        closing = re.compile(rf"</{re.escape(name)}\s*>", re.IGNORECASE)
        match = closing.search(self.buffer, self.pos)
        if match is None:
            return "eof-in-rawtext"
        data = self.buffer[self.pos:match.start()]
        if data:
            self._emit_token(CharacterTokens(data))
        self._emit_token(Tag(Tag.END, name))
        self.pos = match.end()
        self.rawtext_tag_name = None
        self.state = self.DATA
        return None

    def _recover_malformed_tag(self):
        """Salvage a tag whose attributes the strict pattern rejected."""
        buffer = self.buffer
        pos = self.pos
        end = buffer.find(">", pos)
        if end == -1:
            return "eof-in-tag"
        is_end = buffer.startswith("</", pos)
        body = buffer[pos + (2 if is_end else 1):end]
        name_match = re.match(_NAME, body)
        name = self._lower(name_match.group(0))
        self.pos = end + 1
        if is_end:
            self._emit_end_tag(name)
            return None
        rest = body[name_match.end():]
        self_closing = rest.endswith("/")
        if self_closing:
            rest = rest[:-1]
        self._emit_start_tag(name, rest, self_closing)
        return None

    # ---------------------
    # Helper methods
    # ---------------------

    def _lower(self, name):
        return sys.intern(name.translate(_ASCII_LOWER_TABLE))

    def _parse_attributes(self, raw):
        attrs = {}
        for match in _ATTRIBUTE_PATTERN.finditer(raw):
            name = match.group(1).translate(_ASCII_LOWER_TABLE)
            if name in attrs:
                continue
            value = match.group(2)
            if value is None:
                value = match.group(3)
            if value is None:
                value = match.group(4)
            if value is None:
                value = ""
            elif "&" in value:
                value = decode_entities_in_text(value, in_attribute=True)
            attrs[name] = value
        return attrs

    def _append_text_chunk(self, chunk):
        if not chunk:
            return
        if "\r" in chunk:
            chunk = chunk.replace("\r\n", "\n").replace("\r", "\n")
        self.text_buffer.append(chunk)

    def _flush_text(self):
        if not self.text_buffer:
            return
        data = "".join(self.text_buffer)
        self.text_buffer.clear()
        if "&" in data:
            data = decode_entities_in_text(data)
        if data:
            self._emit_token(CharacterTokens(data))

    def _emit_start_tag(self, name, raw_attrs, self_closing):
        self._flush_text()
        attrs = self._parse_attributes(raw_attrs) if raw_attrs else {}
        if name in VOID_ELEMENTS:
            self_closing = True
        elif name in RAWTEXT_ELEMENTS and not self_closing:
            self.state = self.RAWTEXT
            self.rawtext_tag_name = name
        else:
            # A trailing solidus on a non-void element is ignored, as browsers do
            self.open_names.append(name)
        self._emit_token(Tag(Tag.START, name, attrs, self_closing))

    def _emit_end_tag(self, name):
        self._flush_text()
        open_names = self.open_names
        for index in range(len(open_names) - 1, -1, -1):
            if open_names[index] == name:
                del open_names[index:]
                break
        else:
            if self.opts.drop_unmatched_end_tags:
                return
        self._emit_token(Tag(Tag.END, name))

    def _emit_token(self, token):
        self.sink.process_token(token)
