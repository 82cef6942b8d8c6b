"""
Template Markup Package.

Parses component templates into a tree of nodes that carry exact source
ranges, so callers can rewrite elements without re-printing the document.
"""

from enhanced_img.core.markup.nodes import (
  Attribute,
  Block,
  BlockBranch,
  Comment,
  Element,
  Fragment,
  MustacheTag,
  Root,
  Script,
  Style,
  TemplateNode,
  Text,
  ValueToken,
)
from enhanced_img.core.markup.parser import MarkupParser, parse

__all__ = [
  "Attribute",
  "Block",
  "BlockBranch",
  "Comment",
  "Element",
  "Fragment",
  "MarkupParser",
  "MustacheTag",
  "Root",
  "Script",
  "Style",
  "TemplateNode",
  "Text",
  "ValueToken",
  "parse",
]
