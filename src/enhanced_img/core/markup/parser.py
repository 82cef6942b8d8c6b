"""
Template Markup Parser.

Parses component-template source into the node tree defined in `nodes.py`.

The grammar covered is the subset needed to locate elements and their
attributes with exact source ranges:

- HTML-like elements (namespaced names such as `enhanced:img` allowed).
- `{expression}` mustache tags, in text and in attribute values.
- `{#block}`, `{:branch}` and `{/block}` control blocks, `{@tag ...}` tags.
- `<!-- comments -->` and `<!...>` declarations.
- Top-level `<script>` and `<style>` blocks, whose bodies are raw text.

Expressions are not parsed; they are scanned with brace balancing that skips
string, template and regular expression literals and comments. Any structural
error raises `MarkupSyntaxError`; the parser never attempts recovery.
"""

import re
from typing import List, Optional, Tuple, Union

from enhanced_img.core.errors import MarkupSyntaxError
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
from enhanced_img.enums import AttributeKind, ValueKind

VOID_ELEMENTS = frozenset(
  {
    "area",
    "base",
    "br",
    "col",
    "command",
    "embed",
    "hr",
    "img",
    "input",
    "keygen",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
  }
)

DIRECTIVE_PREFIXES = frozenset({"on", "bind", "class", "style", "use", "transition", "in", "out", "animate", "let"})

RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

# A `/` after one of these starts a regular expression literal rather than a division.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{;")

Container = Union[Fragment, Element, Block]


class MarkupParser:
  """
  Recursive-descent parser over a cursor into the source string.

  Open elements and blocks are kept on an explicit stack; the innermost open
  container receives new children.
  """

  _TAG_NAME = re.compile(r"[A-Za-z][\w:.\-]*")
  _ATTR_NAME = re.compile(r"[^\s\"'<>/={}]+")
  _BLOCK_NAME = re.compile(r"[a-z]+")
  _TEXT_END = re.compile(r"<[A-Za-z/!]|\{")
  _WHITESPACE = re.compile(r"\s*")

  def __init__(self, source: str, filename: Optional[str] = None):
    self.source = source
    self.filename = filename
    self.pos = 0
    self.root = Root(html=Fragment(start=0, end=len(source)))
    self._stack: List[Container] = [self.root.html]

  def parse(self) -> Root:
    """
    Parses the internally stored source string.

    Returns:
        Root: The template tree.

    Raises:
        MarkupSyntaxError: If the markup is malformed.
    """
    src = self.source
    while self.pos < len(src):
      if src.startswith("<!--", self.pos):
        self._read_comment()
      elif src.startswith("</", self.pos):
        self._read_closing_tag()
      elif src.startswith("<!", self.pos):
        self._read_declaration()
      elif src[self.pos] == "<" and self.pos + 1 < len(src) and src[self.pos + 1].isalpha():
        self._read_element()
      elif src[self.pos] == "{":
        self._read_mustache()
      else:
        self._read_text()

    if len(self._stack) > 1:
      unclosed = self._stack[-1]
      if isinstance(unclosed, Block):
        self._fail(f"Block {{#{unclosed.name}}} was left open", unclosed.start)
      self._fail(f"<{unclosed.name}> was left open", unclosed.start)
    return self.root

  # --- Diagnostics ---

  def _fail(self, message: str, position: Optional[int] = None) -> None:
    raise MarkupSyntaxError(message, self.source, self.pos if position is None else position, self.filename)

  # --- Tree building ---

  def _append(self, node: TemplateNode) -> None:
    container = self._stack[-1]
    if isinstance(container, Block):
      container.branches[-1].children.append(node)
    else:
      container.children.append(node)

  def _skip_whitespace(self) -> None:
    self.pos = self._WHITESPACE.match(self.source, self.pos).end()

  # --- Content ---

  def _read_text(self) -> None:
    start = self.pos
    match = self._TEXT_END.search(self.source, start + 1)
    end = match.start() if match else len(self.source)
    self._append(Text(start=start, end=end, raw=self.source[start:end]))
    self.pos = end

  def _read_comment(self) -> None:
    start = self.pos
    close = self.source.find("-->", start + 4)
    if close < 0:
      self._fail("comment was left open", start)
    self.pos = close + 3
    self._append(Comment(start=start, end=self.pos, data=self.source[start + 4 : close]))

  def _read_declaration(self) -> None:
    start = self.pos
    close = self.source.find(">", start)
    if close < 0:
      self._fail("declaration was left open", start)
    self.pos = close + 1
    self._append(Comment(start=start, end=self.pos, data=self.source[start + 2 : close]))

  def _read_element(self) -> None:
    start = self.pos
    match = self._TAG_NAME.match(self.source, start + 1)
    if not match:
      self._fail("Expected valid tag name", start + 1)
    name = match.group(0)
    self.pos = match.end()

    attributes, self_closing = self._read_attributes()

    # Case-sensitive: capitalised names are components, never void or raw-text elements.
    if name in RAW_TEXT_ELEMENTS and len(self._stack) == 1:
      self._read_top_level_raw(name, start, attributes, self_closing)
      return

    element = Element(start=start, end=self.pos, name=name, attributes=attributes)
    self._append(element)

    if self_closing or name in VOID_ELEMENTS:
      return

    if name in RAW_TEXT_ELEMENTS:
      content_start = self.pos
      content_end, element.end = self._find_raw_close(name, start)
      if content_end > content_start:
        element.children.append(
          Text(start=content_start, end=content_end, raw=self.source[content_start:content_end])
        )
      return

    self._stack.append(element)

  def _find_raw_close(self, name: str, start: int) -> Tuple[int, int]:
    pattern = re.compile(rf"</{name}\s*>", re.IGNORECASE)
    match = pattern.search(self.source, self.pos)
    if not match:
      self._fail(f"<{name}> was left open", start)
    self.pos = match.end()
    return match.start(), match.end()

  def _read_top_level_raw(self, name: str, start: int, attributes: List[Attribute], self_closing: bool) -> None:
    content_start = self.pos
    if self_closing:
      content_end = end = self.pos
    else:
      content_end, end = self._find_raw_close(name, start)

    if name == "style":
      if self.root.css:
        self._fail("You can only have one top-level <style> tag per component", start)
      self.root.css = Style(
        start=start, end=end, content_start=content_start, content_end=content_end, attributes=attributes
      )
      return

    context = None
    for attribute in attributes:
      if attribute.name == "context" and attribute.value and attribute.value[0].kind == ValueKind.TEXT:
        context = attribute.value[0].raw
    script = Script(
      start=start,
      end=end,
      content_start=content_start,
      content_end=content_end,
      context=context,
      attributes=attributes,
    )
    if context == "module":
      if self.root.module:
        self._fail("A component can only have one <script context=\"module\"> element", start)
      self.root.module = script
    else:
      if self.root.instance:
        self._fail("A component can only have one instance-level <script> element", start)
      self.root.instance = script

  def _read_closing_tag(self) -> None:
    start = self.pos
    match = self._TAG_NAME.match(self.source, start + 2)
    if not match:
      self._fail("Expected valid tag name", start + 2)
    name = match.group(0)
    self.pos = match.end()
    self._skip_whitespace()
    if not self.source.startswith(">", self.pos):
      self._fail(f"Expected '>' to close </{name}>")
    self.pos += 1

    # Elements nested inside the one being closed are closed implicitly.
    for depth in range(len(self._stack) - 1, 0, -1):
      container = self._stack[depth]
      if isinstance(container, Block):
        break
      if container.name == name:
        for implicit in self._stack[depth + 1 :]:
          implicit.end = start
        container.end = self.pos
        del self._stack[depth:]
        return
    self._fail(f"</{name}> attempted to close an element that was not open", start)

  # --- Mustache tags and blocks ---

  def _read_mustache(self) -> None:
    start = self.pos
    src = self.source
    marker = src[start + 1 : start + 2]

    if marker in ("#", ":", "/"):
      match = self._BLOCK_NAME.match(src, start + 2)
      if not match:
        self._fail("Expected block name", start + 2)
      keyword = match.group(0)
      close = self._scan_expression(match.end())
      expression = src[match.end() : close].strip()
      self.pos = close + 1
      if marker == "#":
        self._open_block(keyword, expression, start)
      elif marker == ":":
        self._continue_block(keyword, expression, start)
      else:
        if expression:
          self._fail(f"Unexpected content in {{/{keyword}}}", match.end())
        self._close_block(keyword, start)
      return

    close = self._scan_expression(start + 1)
    self.pos = close + 1
    self._append(MustacheTag(start=start, end=self.pos, expression=src[start + 1 : close]))

  def _open_block(self, name: str, expression: str, start: int) -> None:
    block = Block(start=start, end=self.pos, name=name)
    block.branches.append(BlockBranch(start=start, end=self.pos, keyword=name, expression=expression))
    self._append(block)
    self._stack.append(block)

  def _continue_block(self, keyword: str, expression: str, start: int) -> None:
    block = self._stack[-1]
    if not isinstance(block, Block):
      if len(self._stack) > 1:
        self._fail(f"Expected to close <{block.name}> before {{:{keyword}}}", start)
      self._fail(f"{{:{keyword}}} cannot appear outside a block", start)
    block.branches[-1].end = start
    block.branches.append(BlockBranch(start=start, end=self.pos, keyword=keyword, expression=expression))

  def _close_block(self, name: str, start: int) -> None:
    block = self._stack[-1]
    if not isinstance(block, Block):
      if len(self._stack) > 1:
        self._fail(f"Expected to close <{block.name}> before {{/{name}}}", start)
      self._fail(f"Unexpected block closing tag {{/{name}}}", start)
    if block.name != name:
      self._fail(f"Expected {{/{block.name}}}, found {{/{name}}}", start)
    block.branches[-1].end = start
    block.end = self.pos
    self._stack.pop()

  # --- Attributes ---

  def _read_attributes(self) -> Tuple[List[Attribute], bool]:
    src = self.source
    attributes: List[Attribute] = []
    while True:
      self._skip_whitespace()
      if self.pos >= len(src):
        self._fail("Unexpected end of input inside tag")
      if src.startswith("/>", self.pos):
        self.pos += 2
        return attributes, True
      if src[self.pos] == ">":
        self.pos += 1
        return attributes, False
      attributes.append(self._read_attribute())

  def _read_attribute(self) -> Attribute:
    src = self.source
    start = self.pos

    if src[start] == "{":
      close = self._scan_expression(start + 1)
      self.pos = close + 1
      inner = src[start + 1 : close]
      tag = MustacheTag(start=start, end=self.pos, expression=inner)
      stripped = inner.strip()
      if stripped.startswith("..."):
        return Attribute(start=start, end=self.pos, name="", value=[tag], kind=AttributeKind.SPREAD)
      return Attribute(start=start, end=self.pos, name=stripped, value=[tag])

    match = self._ATTR_NAME.match(src, start)
    if not match:
      self._fail(f"Unexpected character {src[start]!r} in tag")
    name = match.group(0)
    self.pos = match.end()

    value: List[ValueToken] = []
    end = self.pos
    self._skip_whitespace()
    if src.startswith("=", self.pos):
      self.pos += 1
      self._skip_whitespace()
      value = self._read_attribute_value()
      end = self.pos
    else:
      self.pos = end

    kind = AttributeKind.ATTRIBUTE
    prefix, sep, _ = name.partition(":")
    if sep and prefix in DIRECTIVE_PREFIXES:
      kind = AttributeKind.DIRECTIVE
    return Attribute(start=start, end=end, name=name, value=value, kind=kind)

  def _read_attribute_value(self) -> List[ValueToken]:
    src = self.source
    if self.pos >= len(src):
      self._fail("Unexpected end of input in attribute value")

    quote = src[self.pos] if src[self.pos] in "\"'" else None
    if quote:
      self.pos += 1

    chunks: List[ValueToken] = []
    text_start = self.pos
    while True:
      if self.pos >= len(src):
        self._fail("Unexpected end of input in attribute value", text_start)
      char = src[self.pos]
      at_end = char == quote if quote else (char.isspace() or char == ">" or src.startswith("/>", self.pos))
      if at_end or char == "{":
        if self.pos > text_start:
          chunks.append(Text(start=text_start, end=self.pos, raw=src[text_start : self.pos]))
        if at_end:
          break
        close = self._scan_expression(self.pos + 1)
        chunks.append(MustacheTag(start=self.pos, end=close + 1, expression=src[self.pos + 1 : close]))
        self.pos = close + 1
        text_start = self.pos
        continue
      self.pos += 1

    if quote:
      if not chunks:
        chunks.append(Text(start=self.pos, end=self.pos, raw=""))
      self.pos += 1
    return chunks

  # --- Expression scanning ---

  def _scan_expression(self, pos: int) -> int:
    """
    Finds the brace that closes an expression.

    Args:
        pos (int): Offset just after the opening `{`.

    Returns:
        int: Offset of the matching `}`.
    """
    src = self.source
    depth = 0
    i = pos
    previous = ""  # last significant character, "" at the start
    while i < len(src):
      char = src[i]
      if char.isspace():
        i += 1
        continue
      if src.startswith("/*", i):
        close = src.find("*/", i + 2)
        if close < 0:
          self._fail("comment was left open", i)
        i = close + 2
        continue
      if src.startswith("//", i):
        newline = src.find("\n", i)
        i = len(src) if newline < 0 else newline
        continue
      if char in "\"'":
        i = self._skip_string(i, char)
        previous = char
        continue
      if char == "`":
        i = self._skip_template(i)
        previous = char
        continue
      if char == "/" and (not previous or previous in _REGEX_PRECEDERS):
        i = self._skip_regex(i)
        previous = "/"
        continue
      previous = char
      if char in "([{":
        depth += 1
      elif char in ")]}":
        if depth == 0:
          if char == "}":
            return i
          self._fail(f"Unexpected {char!r} in expression", i)
        depth -= 1
      i += 1
    self._fail("Expected '}' to close expression", pos - 1)

  def _skip_regex(self, i: int) -> int:
    src = self.source
    j = i + 1
    in_class = False
    while j < len(src) and src[j] != "\n":
      char = src[j]
      if char == "\\":
        j += 2
        continue
      if char == "[":
        in_class = True
      elif char == "]":
        in_class = False
      elif char == "/" and not in_class:
        return j + 1
      j += 1
    self._fail("Unterminated regular expression", i)

  def _skip_string(self, i: int, quote: str) -> int:
    src = self.source
    j = i + 1
    while j < len(src):
      if src[j] == "\\":
        j += 2
        continue
      if src[j] == quote:
        return j + 1
      j += 1
    self._fail("Unterminated string literal", i)

  def _skip_template(self, i: int) -> int:
    src = self.source
    j = i + 1
    while j < len(src):
      if src[j] == "\\":
        j += 2
        continue
      if src[j] == "`":
        return j + 1
      if src.startswith("${", j):
        j = self._scan_expression(j + 2) + 1
        continue
      j += 1
    self._fail("Unterminated template literal", i)


def parse(source: str, filename: Optional[str] = None) -> Root:
  """
  Parses a template into its node tree.

  Args:
      source (str): Full template source.
      filename (Optional[str]): Used only for error messages.

  Returns:
      Root: The template tree.
  """
  return MarkupParser(source, filename).parse()
