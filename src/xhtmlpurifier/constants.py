"""Element name sets used by the tokenizer and the tree builder.

These are closed vocabularies: the policy decides which elements survive, these
sets decide how the automaton treats an element once it is allowed.

Usage:
    from xhtmlpurifier.constants import VOID_ELEMENTS, TABLE_SECTION_TAGS
"""

# Elements the tokenizer always flags as self-closing
VOID_ELEMENTS = frozenset(
    [
        "area",
        "base",
        "basefont",
        "br",
        "col",
        "embed",
        "frame",
        "hr",
        "img",
        "input",
        "isindex",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    ],
)

# Bodies emitted verbatim up to the matching end tag
RAWTEXT_ELEMENTS = frozenset(["script", "style"])

FORMATTING_ELEMENTS = frozenset(["a", "em", "strong"])

HEADING_ELEMENTS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6"])

# Closed by context, without an explicit end tag
IMPLIED_END_TAGS = frozenset(["li", "p"])

DEFAULT_SCOPE_TERMINATORS = frozenset(["caption", "table", "td", "th"])
LIST_ITEM_SCOPE_TERMINATORS = DEFAULT_SCOPE_TERMINATORS | {"ol", "ul"}
TABLE_SCOPE_TERMINATORS = frozenset(["table"])

TABLE_SECTION_TAGS = frozenset(["tbody", "tfoot", "thead"])
TABLE_CELL_TAGS = frozenset(["td", "th"])
TABLE_STRUCTURE_TAGS = TABLE_SECTION_TAGS | TABLE_CELL_TAGS | {"caption", "col", "colgroup", "tr"}

# Context elements for _clear_stack_until
TABLE_CONTEXT = frozenset(["table"])
TABLE_BODY_CONTEXT = TABLE_SECTION_TAGS | {"table"}
TABLE_ROW_CONTEXT = frozenset(["table", "tr"])

# Start tags that close an open caption/section/row/cell before being reprocessed
CAPTION_CLOSING_START_TAGS = TABLE_STRUCTURE_TAGS
SECTION_CLOSING_START_TAGS = TABLE_SECTION_TAGS | {"caption", "col", "colgroup"}
ROW_CLOSING_START_TAGS = SECTION_CLOSING_START_TAGS | {"tr"}

# End tags ignored outright in the given table modes
CAPTION_IGNORED_END_TAGS = TABLE_STRUCTURE_TAGS - {"caption"}
SECTION_IGNORED_END_TAGS = frozenset(["caption", "col", "colgroup", "td", "th", "tr"])
ROW_IGNORED_END_TAGS = frozenset(["caption", "col", "colgroup", "td", "th"])
CELL_IGNORED_END_TAGS = frozenset(["caption", "col", "colgroup"])
CELL_CLOSING_END_TAGS = TABLE_SECTION_TAGS | {"table", "tr"}

# Active formatting list scope boundary
FORMAT_MARKER = object()
