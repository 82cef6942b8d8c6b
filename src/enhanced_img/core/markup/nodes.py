"""
Template Markup Nodes.

This module defines the tree produced by `MarkupParser`. Every node records the
half-open character range `[start, end)` it occupies in the original source so
that rewrites can be expressed as edits over the untouched text.

Classes:
    - Text / MustacheTag -> attribute value tokens and text content
    - Attribute          -> one entry of an element's attribute list
    - Element            -> `<name ...>...</name>`
    - Block              -> `{#if}...{:else}...{/if}` and friends
    - Script / Style     -> top-level raw-text blocks
    - Root               -> parse result
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from enhanced_img.enums import AttributeKind, ValueKind


@dataclass
class TemplateNode:
  """
  Base class for all nodes of the template tree.

  Attributes:
      start (int): Offset of the first character of the node.
      end (int): Offset one past the last character of the node.
  """

  start: int
  end: int


@dataclass
class Text(TemplateNode):
  """Literal text. For quoted attribute values the range excludes the quotes."""

  raw: str
  kind: ValueKind = field(default=ValueKind.TEXT, init=False)


@dataclass
class MustacheTag(TemplateNode):
  """
  An embedded `{expression}`.

  The range includes both braces; `expression` is the text between them.
  """

  expression: str
  kind: ValueKind = field(default=ValueKind.MUSTACHE, init=False)


ValueToken = Union[Text, MustacheTag]


@dataclass
class Comment(TemplateNode):
  """An HTML comment or `<!...>` declaration."""

  data: str


@dataclass
class Attribute(TemplateNode):
  """
  One entry of an element's attribute list.

  Attributes:
      name (str): Attribute name as written (empty for spreads).
      value (List[ValueToken]): Value tokens; empty for boolean attributes.
      kind (AttributeKind): Plain attribute, spread or directive.
  """

  name: str
  value: List[ValueToken] = field(default_factory=list)
  kind: AttributeKind = AttributeKind.ATTRIBUTE


@dataclass
class Element(TemplateNode):
  """An element with its attributes and child nodes."""

  name: str
  attributes: List[Attribute] = field(default_factory=list)
  children: List[TemplateNode] = field(default_factory=list)


@dataclass
class BlockBranch(TemplateNode):
  """One branch of a control block (`{#if}` opens the first, `{:else}` the next)."""

  keyword: str
  expression: str
  children: List[TemplateNode] = field(default_factory=list)


@dataclass
class Block(TemplateNode):
  """A control block such as `{#if}`, `{#each}`, `{#await}` or `{#key}`."""

  name: str
  branches: List[BlockBranch] = field(default_factory=list)

  @property
  def children(self) -> List[TemplateNode]:
    """All child nodes across every branch, in document order."""
    return [child for branch in self.branches for child in branch.children]


@dataclass
class Script(TemplateNode):
  """
  A top-level `<script>` block.

  Attributes:
      content_start (int): Offset just after the opening tag.
      content_end (int): Offset of the closing tag.
      context (Optional[str]): Value of the `context` attribute (e.g. "module").
  """

  content_start: int
  content_end: int
  context: Optional[str] = None
  attributes: List[Attribute] = field(default_factory=list)


@dataclass
class Style(TemplateNode):
  """A top-level `<style>` block."""

  content_start: int
  content_end: int
  attributes: List[Attribute] = field(default_factory=list)


@dataclass
class Fragment(TemplateNode):
  """The markup portion of a template."""

  children: List[TemplateNode] = field(default_factory=list)


@dataclass
class Root:
  """
  Parse result of a whole template.

  Attributes:
      html (Fragment): Markup nodes, excluding top-level script and style blocks.
      instance (Optional[Script]): The instance-level `<script>`.
      module (Optional[Script]): The `<script context="module">` block.
      css (Optional[Style]): The top-level `<style>` block.
  """

  html: Fragment
  instance: Optional[Script] = None
  module: Optional[Script] = None
  css: Optional[Style] = None

