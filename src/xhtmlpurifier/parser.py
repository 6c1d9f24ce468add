"""XHTMLPurifier parser entry point."""

from .serialize import to_xhtml
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import ParseError
from .treebuilder import TreeBuilder


class XHTMLPurifier:
    """Parse `html` into a purified tree on construction.

    Parsing never raises: malformed markup is repaired, a tokenizer failure
    keeps whatever was built before it, and an unexpected internal error is
    recorded in `errors` as ``internal-error``.
    """

    __slots__ = ("debug", "policy", "root", "tokenizer", "tree_builder")

    def __init__(
        self,
        html,
        *,
        policy=None,
        debug=False,
        tokenizer_opts=None,
        tree_builder=None,
    ):
        self.debug = bool(debug)
        self.tree_builder = tree_builder or TreeBuilder(policy=policy, debug=self.debug)
        self.policy = self.tree_builder.policy
        self.tokenizer = Tokenizer(self.tree_builder, tokenizer_opts or TokenizerOpts())
        try:
            self.tokenizer.run(html or "")
        except Exception as exc:  # noqa: BLE001
            self.tree_builder.errors.append(ParseError("internal-error", repr(exc)))
            self.tree_builder.aborted = True
        self.root = self.tree_builder.finish()

    @property
    def errors(self):
        return self.tree_builder.errors

    @property
    def aborted(self):
        return self.tree_builder.aborted

    def to_xhtml(self):
        return to_xhtml(self.root, policy=self.policy)


def purify(html, *, policy=None):
    """Return `html` reduced to well-formed, whitelisted, indented XHTML."""
    return XHTMLPurifier(html, policy=policy).to_xhtml()
