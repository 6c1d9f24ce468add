"""Pretty XHTML serialization for purified trees."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from .policy import DEFAULT_POLICY, PurifyPolicy


def _escape_text(text: str | None) -> str:
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _escape_attr_value(value: str | None) -> str:
    if value is None:
        return ""
    return str(value).replace("&", "&amp;").replace('"', "&quot;")


def _is_whitespace_text(node: Any) -> bool:
    return node.name == "#text" and (not node.data or node.data.isspace())


def allowed_attributes(node: Any, policy: PurifyPolicy) -> dict[str, str]:
    """Attributes of `node` that survive the policy, in the policy's order."""
    kept: dict[str, str] = {}
    attrs = node.attrs
    if not attrs:
        return kept
    for name in policy.attributes_for(node.name):
        value = attrs.get(name)
        if not value:
            continue
        if name in policy.url_attributes and not policy.allows_url(value):
            continue
        kept[name] = value
    return kept


def serialize_start_tag(
    name: str,
    attrs: dict[str, str] | None,
    *,
    is_void: bool = False,
) -> str:
    parts: list[str] = ["<", name]
    if attrs:
        for key, value in attrs.items():
            parts.extend([" ", key, '="', _escape_attr_value(value), '"'])
    if is_void:
        parts.append(" />")
    else:
        parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def to_xhtml(node: Any, *, policy: PurifyPolicy | None = None) -> str:
    """Render `node` as indented XHTML.

    Block elements go on their own lines, indented `policy.indent_size`
    spaces per level. Runs of text and inline elements share one line.
    Elements without content are left out. The walk keeps its own stack, so
    nesting depth is not bounded by the interpreter's recursion limit.
    """
    policy = policy or DEFAULT_POLICY
    if node.name == "#text" or policy.is_inline(node.name):
        return _inline_children_to_html([node], policy).strip()
    lines: list[str] = []
    _block_to_lines(node, policy, lines)
    return "\n".join(lines).strip()


_OPEN = 0
_CLOSE = 1
_RUN = 2


def _block_to_lines(root: Any, policy: PurifyPolicy, lines: list[str]) -> None:
    # Frames are (phase, item, depth); item is a node, or a list of inline siblings for _RUN
    stack: list[tuple[int, Any, int]] = [(_OPEN, root, 0)]
    while stack:
        phase, item, depth = stack.pop()
        prefix = " " * (depth * policy.indent_size)
        if phase == _RUN:
            line = _inline_children_to_html(item, policy).strip()
            if line:
                lines.append(prefix + line)
            continue
        if phase == _CLOSE:
            lines.append(prefix + serialize_end_tag(item.name))
            continue

        name: str = item.name
        if name != "#document-fragment":
            if policy.is_void(name):
                lines.append(prefix + serialize_start_tag(name, allowed_attributes(item, policy), is_void=True))
                continue
            if not item.has_content():
                continue
            lines.append(prefix + serialize_start_tag(name, allowed_attributes(item, policy)))
            stack.append((_CLOSE, item, depth))
            depth += 1
        stack.extend(reversed(_child_frames(item, depth, policy)))


def _child_frames(parent: Any, depth: int, policy: PurifyPolicy) -> list[tuple[int, Any, int]]:
    """Group children into inline runs and block elements, in document order."""
    frames: list[tuple[int, Any, int]] = []
    run: list[Any] = []
    for child in parent.children:
        if child.name == "#text" or policy.is_inline(child.name):
            run.append(child)
            continue
        if run:
            frames.append((_RUN, run, depth))
            run = []
        frames.append((_OPEN, child, depth))
    if run:
        frames.append((_RUN, run, depth))
    return frames


def _inline_children_to_html(children: list[Any], policy: PurifyPolicy) -> str:
    # Each frame collects the rendered parts of one open inline element
    stack: list[tuple[Any, Iterator[Any], list[str]]] = [(None, iter(children), [])]
    while True:
        node, pending, parts = stack[-1]
        child = next(pending, None)
        if child is None:
            stack.pop()
            inner = "".join(parts)
            if node is None:
                return inner
            start = serialize_start_tag(node.name, allowed_attributes(node, policy))
            stack[-1][2].append(start + inner + serialize_end_tag(node.name))
            continue
        if _is_whitespace_text(child):
            # Whitespace-only text separates inline siblings with one space
            if parts and not parts[-1].endswith(" "):
                parts.append(" ")
        elif child.name == "#text":
            parts.append(_escape_text(child.data))
        elif policy.is_void(child.name):
            parts.append(serialize_start_tag(child.name, allowed_attributes(child, policy), is_void=True))
        elif not child.has_content():
            parts.append("")
        else:
            stack.append((child, iter(child.children), []))
