class Tag:
    __slots__ = ("attrs", "kind", "name", "self_closing")

    START = 0
    END = 1

    def __init__(self, kind, name, attrs=None, self_closing=False):
        self.kind = kind
        self.name = name
        self.attrs = attrs if attrs is not None else {}
        self.self_closing = bool(self_closing)

    def renamed(self, name):
        """Return a copy of this tag under another name (attributes shared)."""
        return Tag(self.kind, name, self.attrs, self.self_closing)

    def __repr__(self):
        attrs = " ".join(f"{name}={value!r}" for name, value in self.attrs.items())
        closing = " /" if self.self_closing else ""
        kind_str = "start" if self.kind == self.START else "end"
        return f"<{kind_str}:{self.name}{closing} {attrs}>"


class CharacterTokens:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CharacterTokens({self.data!r})"


class CommentToken:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data


class EOFToken:
    """End of the token stream.

    `error` is None for a clean end. When the tokenizer gives up on malformed
    input it still terminates the stream with an EOFToken, carrying the error
    code, so the tree builder can stop and keep what it has built.
    """

    __slots__ = ("error",)

    def __init__(self, error=None):
        self.error = error

    def __repr__(self):
        return f"EOFToken(error={self.error!r})"


class ParseError:
    __slots__ = ("code", "detail")

    def __init__(self, code, detail=None):
        self.code = code
        self.detail = detail

    def __eq__(self, other):
        if isinstance(other, ParseError):
            return self.code == other.code and self.detail == other.detail
        return NotImplemented

    def __hash__(self):
        return hash((self.code, self.detail))

    def __repr__(self):
        if self.detail:
            return f"ParseError({self.code}: {self.detail})"
        return f"ParseError({self.code})"
