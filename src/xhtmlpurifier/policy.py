"""Element whitelist and transform table.

A `PurifyPolicy` answers three questions for the tree builder and the
serializer:

- Is a tag allowed, and under which name(s) does it enter the tree?
  (`b` becomes `strong`; a heading may expand to `p` + `strong`.)
- Which attributes may an element carry, and in which order are they emitted?
- Is the element void (never has children) or inline (rendered on one line
  with the surrounding text)?

Names not present in `elements` are disallowed: their tags are dropped but
their content is still parsed.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .constants import HEADING_ELEMENTS


@dataclass(frozen=True, slots=True)
class ElementRule:
    """How one allowed tag name is treated.

    `rename_to` is empty to keep the name, one name to rename, several to
    expand (opened in order, closed in reverse).
    """

    rename_to: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    void: bool = False
    inline: bool = False

    # Element names that may not appear anywhere inside this element
    excludes: Collection[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if isinstance(self.rename_to, str):
            object.__setattr__(self, "rename_to", (self.rename_to,))
        elif not isinstance(self.rename_to, tuple):
            object.__setattr__(self, "rename_to", tuple(self.rename_to))
        if not isinstance(self.attributes, tuple):
            object.__setattr__(self, "attributes", tuple(self.attributes))
        if not isinstance(self.excludes, frozenset):
            object.__setattr__(self, "excludes", frozenset(self.excludes))


_DROP: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PurifyPolicy:
    """An allow-list of elements and attributes.

    All tag and attribute names are expected to be ASCII-lowercase.
    """

    elements: Mapping[str, ElementRule]

    # Allowed on every element, emitted after the per-tag attributes
    global_attributes: tuple[str, ...] = ("class",)

    # When False, h1-h6 degrade to a paragraph holding a strong run
    allow_headings: bool = False

    # Containers whose text payload is dropped along with the tag
    drop_content_tags: Collection[str] = field(default_factory=lambda: {"script", "style", "title"})

    # Attributes holding URLs; absolute values must use an allowed scheme
    url_attributes: Collection[str] = field(default_factory=lambda: {"cite", "href", "src"})
    allowed_url_schemes: Collection[str] = field(default_factory=lambda: {"ftp", "http", "https", "mailto"})

    indent_size: int = 2

    def __post_init__(self) -> None:
        # A private read-only copy; policies never share a mutable table
        object.__setattr__(self, "elements", MappingProxyType(dict(self.elements)))
        if not isinstance(self.global_attributes, tuple):
            object.__setattr__(self, "global_attributes", tuple(self.global_attributes))
        if not isinstance(self.drop_content_tags, frozenset):
            object.__setattr__(self, "drop_content_tags", frozenset(self.drop_content_tags))
        if not isinstance(self.url_attributes, frozenset):
            object.__setattr__(self, "url_attributes", frozenset(self.url_attributes))
        if not isinstance(self.allowed_url_schemes, frozenset):
            schemes = frozenset(scheme.lower() for scheme in self.allowed_url_schemes)
            object.__setattr__(self, "allowed_url_schemes", schemes)
        if self.indent_size < 0:
            raise ValueError("indent_size must not be negative")

    def rule_for(self, name: str) -> ElementRule | None:
        return self.elements.get(name)

    def transform(self, name: str) -> tuple[str, ...]:
        """Names a tag enters the tree under; empty when the tag is dropped."""
        if self.allow_headings and name in HEADING_ELEMENTS:
            return (name,)
        rule = self.elements.get(name)
        if rule is None:
            return _DROP
        return rule.rename_to or (name,)

    def is_void(self, name: str) -> bool:
        rule = self.elements.get(name)
        return rule is not None and rule.void

    def is_inline(self, name: str) -> bool:
        rule = self.elements.get(name)
        return rule is not None and rule.inline

    def attributes_for(self, name: str) -> tuple[str, ...]:
        rule = self.elements.get(name)
        if rule is None:
            return ()
        if not self.global_attributes:
            return rule.attributes
        extra = tuple(attr for attr in self.global_attributes if attr not in rule.attributes)
        return rule.attributes + extra

    def allows_url(self, value: str) -> bool:
        """Relative URLs and fragments pass; absolute ones need an allowed scheme."""
        # Browsers ignore control characters and whitespace inside schemes
        compact = "".join(ch for ch in value if ch > " " and ch != "\x7f")
        if not compact:
            return False
        if compact.startswith("//"):
            return False
        colon = compact.find(":")
        if colon == -1:
            return True
        # A colon after the first path, query or fragment delimiter is not a scheme
        for delimiter in "/?#":
            index = compact.find(delimiter)
            if index != -1 and index < colon:
                return True
        return compact[:colon].lower() in self.allowed_url_schemes


_BLOCK = ElementRule()
_INLINE = ElementRule(inline=True)
_HEADING = ElementRule(rename_to=("p", "strong"))
_CELL = ElementRule(attributes=("colspan", "rowspan"))

DEFAULT_POLICY: PurifyPolicy = PurifyPolicy(
    elements={
        # Flow
        "p": _BLOCK,
        "blockquote": ElementRule(attributes=("cite",)),
        "pre": ElementRule(excludes={"img"}),
        "hr": ElementRule(void=True),
        # Headings
        "h1": _HEADING,
        "h2": _HEADING,
        "h3": _HEADING,
        "h4": _HEADING,
        "h5": _HEADING,
        "h6": _HEADING,
        # Lists
        "ul": _BLOCK,
        "ol": _BLOCK,
        "li": _BLOCK,
        # Text formatting
        "a": ElementRule(attributes=("href", "name", "title", "rel", "rev"), inline=True, excludes={"a"}),
        "strong": _INLINE,
        "b": ElementRule(rename_to=("strong",), inline=True),
        "em": _INLINE,
        "i": ElementRule(rename_to=("em",), inline=True),
        "code": _INLINE,
        # Line breaks and images
        "br": ElementRule(void=True, inline=True),
        "img": ElementRule(attributes=("src", "alt"), void=True, inline=True),
        # Tables
        "table": _BLOCK,
        "caption": _BLOCK,
        "colgroup": ElementRule(attributes=("span",)),
        "col": ElementRule(attributes=("span",), void=True),
        "thead": _BLOCK,
        "tbody": _BLOCK,
        "tfoot": _BLOCK,
        "tr": _BLOCK,
        "td": _CELL,
        "th": _CELL,
    },
)
