from .node import ElementNode, TextNode
from .parser import XHTMLPurifier, purify
from .policy import DEFAULT_POLICY, ElementRule, PurifyPolicy
from .serialize import to_xhtml
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import ParseError
from .treebuilder import InsertionMode, TreeBuilder

__all__ = [
    "DEFAULT_POLICY",
    "ElementNode",
    "ElementRule",
    "InsertionMode",
    "ParseError",
    "PurifyPolicy",
    "TextNode",
    "Tokenizer",
    "TokenizerOpts",
    "TreeBuilder",
    "XHTMLPurifier",
    "purify",
    "to_xhtml",
]
