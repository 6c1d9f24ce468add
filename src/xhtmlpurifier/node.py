def _is_all_whitespace(text):
    return not text or text.isspace()


class ElementNode:
    __slots__ = ("attrs", "children", "name", "parent", "void")

    def __init__(self, name, attrs=None, void=False):
        self.name = name
        self.attrs = attrs if attrs is not None else {}
        self.children = []
        self.parent = None
        self.void = void

    def append_child(self, node):
        self.children.append(node)
        node.parent = self

    def remove_child(self, node):
        self.children.remove(node)
        node.parent = None

    def clone(self):
        """Shallow copy: same name and attributes, no children, no parent."""
        return ElementNode(self.name, dict(self.attrs), self.void)

    def has_content(self):
        """True when the subtree holds non-whitespace text or a void element."""
        if self.void:
            return True
        pending = list(self.children)
        while pending:
            child = pending.pop()
            if isinstance(child, TextNode):
                if not _is_all_whitespace(child.data):
                    return True
            elif child.void:
                return True
            else:
                pending.extend(child.children)
        return False

    def last_significant_child(self):
        for child in reversed(self.children):
            if isinstance(child, TextNode) and _is_all_whitespace(child.data):
                continue
            return child
        return None

    def to_test_format(self, indent=0):
        if self.name == "#document-fragment":
            return "\n".join(child.to_test_format(0) for child in self.children)
        parts = [f"| {' ' * indent}<{self.name}>"]
        for key, value in sorted(self.attrs.items()):
            parts.append(f'| {" " * (indent + 2)}{key}="{value}"')
        parts.extend(child.to_test_format(indent + 2) for child in self.children)
        return "\n".join(parts)

    def __repr__(self):
        return f"ElementNode(<{self.name}>, children={len(self.children)})"


class TextNode:
    __slots__ = ("data", "name", "parent")

    def __init__(self, data):
        self.data = data
        self.parent = None
        self.name = "#text"

    def to_test_format(self, indent=0):
        return f'| {" " * indent}"{self.data}"'

    def __repr__(self):
        return f"TextNode({self.data[:30]!r})"
