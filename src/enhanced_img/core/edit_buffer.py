"""
Edit Buffer and Source Maps.

`EditBuffer` records edits against an immutable original string. Every position
handed to it is an offset into the original text, so callers never track the
drift caused by earlier edits. Rendering walks the original once, splicing in
overwrites and insertions, and can emit a version 3 source map for the result.

Mapping granularity:
    - Unedited text: one segment at the start of each chunk and of each line.
    - Overwritten ranges: one segment at the start of the replacement.
    - Inserted and appended text: unmapped.
"""

import base64
import bisect
import json
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from enhanced_img.core.errors import EditConflictError

_BASE64_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_VALUES = {char: index for index, char in enumerate(_BASE64_CHARS)}


def encode_vlq(value: int) -> str:
  """Encodes one signed integer as a base64 VLQ string."""
  vlq = (-value << 1) | 1 if value < 0 else value << 1
  encoded = ""
  while True:
    digit = vlq & 31
    vlq >>= 5
    if vlq:
      digit |= 32
    encoded += _BASE64_CHARS[digit]
    if not vlq:
      return encoded


def decode_mappings(mappings: str) -> List[List[Tuple[int, ...]]]:
  """
  Decodes a `mappings` string into absolute segments.

  Returns:
      List[List[Tuple[int, ...]]]: Per generated line, a list of
      `(generated_column, source_index, original_line, original_column)` tuples.
  """
  lines: List[List[Tuple[int, ...]]] = []
  state = [0, 0, 0, 0]
  for line in mappings.split(";"):
    state[0] = 0
    segments = []
    for segment in filter(None, line.split(",")):
      fields = []
      value = shift = 0
      for char in segment:
        digit = _BASE64_VALUES[char]
        value += (digit & 31) << shift
        if digit & 32:
          shift += 5
          continue
        fields.append(-(value >> 1) if value & 1 else value >> 1)
        value = shift = 0
      for index, delta in enumerate(fields):
        state[index] += delta
      segments.append(tuple(state[: len(fields)]))
    lines.append(segments)
  return lines


class SourceMap(BaseModel):
  """
  Version 3 source map.

  Lines are 0-based in `mappings`, columns count characters.
  """

  model_config = ConfigDict(populate_by_name=True)

  version: int = Field(default=3, description="Source map format revision.")
  file: Optional[str] = Field(default=None, description="Name of the generated file.")
  sources: List[Optional[str]] = Field(default_factory=list, description="Original source names.")
  sources_content: List[Optional[str]] = Field(
    default_factory=list, alias="sourcesContent", description="Inlined original sources."
  )
  names: List[str] = Field(default_factory=list, description="Symbol names referenced by segments.")
  mappings: str = Field(default="", description="Base64 VLQ encoded segments.")

  def to_dict(self) -> Dict:
    """Returns the map with the standard camelCase keys."""
    return self.model_dump(by_alias=True)

  def to_json(self) -> str:
    """Serializes the map to a JSON string."""
    return json.dumps(self.to_dict())

  def to_url(self) -> str:
    """Serializes the map as a base64 `data:` URL suitable for inline comments."""
    payload = base64.b64encode(self.to_json().encode("utf-8")).decode("ascii")
    return f"data:application/json;charset=utf-8;base64,{payload}"


@dataclass
class _Piece:
  text: str
  origin: Optional[int] = None  # original offset of the first character, None if inserted
  edited: bool = False


class EditBuffer:
  """
  Ordered collection of edits over an immutable original text.
  """

  def __init__(self, original: str):
    self.original = original
    self._overwrites: Dict[int, Tuple[int, str]] = {}
    self._inserts: Dict[int, List[str]] = {}
    self._outro: List[str] = []
    self._line_starts = [0] + [i + 1 for i, char in enumerate(original) if char == "\n"]

  def _check_range(self, start: int, end: int) -> None:
    if not 0 <= start <= end <= len(self.original):
      raise EditConflictError(f"Range [{start}, {end}) is outside the original text")

  def overwrite(self, start: int, end: int, text: str) -> "EditBuffer":
    """
    Replaces the original characters in `[start, end)`.

    Raises:
        EditConflictError: If the range is empty, out of bounds or overlaps
            an earlier overwrite.
    """
    self._check_range(start, end)
    if start == end:
      raise EditConflictError("Cannot overwrite an empty range; use insert_left")
    for other_start, (other_end, _) in self._overwrites.items():
      if start < other_end and other_start < end:
        raise EditConflictError(f"Range [{start}, {end}) overlaps edited range [{other_start}, {other_end})")
    for position in self._inserts:
      if start < position < end:
        raise EditConflictError(f"Range [{start}, {end}) would swallow text inserted at {position}")
    self._overwrites[start] = (end, text)
    return self

  def insert_left(self, position: int, text: str) -> "EditBuffer":
    """
    Inserts text at an original offset, after earlier insertions at the same offset.

    Raises:
        EditConflictError: If the offset lies strictly inside an overwritten range.
    """
    self._check_range(position, position)
    for other_start, (other_end, _) in self._overwrites.items():
      if other_start < position < other_end:
        raise EditConflictError(f"Position {position} lies inside edited range [{other_start}, {other_end})")
    self._inserts.setdefault(position, []).append(text)
    return self

  def append(self, text: str) -> "EditBuffer":
    """Adds text after the end of the output."""
    self._outro.append(text)
    return self

  def has_changed(self) -> bool:
    """True when at least one edit has been recorded."""
    return bool(self._overwrites or self._inserts or any(self._outro))

  def _pieces(self) -> List[_Piece]:
    pieces: List[_Piece] = []
    cursor = 0
    for position in sorted(set(self._overwrites) | set(self._inserts)):
      if position > cursor:
        pieces.append(_Piece(self.original[cursor:position], origin=cursor))
        cursor = position
      for text in self._inserts.get(position, []):
        pieces.append(_Piece(text))
      if position in self._overwrites:
        end, text = self._overwrites[position]
        pieces.append(_Piece(text, origin=position, edited=True))
        cursor = end
    if cursor < len(self.original):
      pieces.append(_Piece(self.original[cursor:], origin=cursor))
    pieces.extend(_Piece(text) for text in self._outro)
    return pieces

  def to_text(self) -> str:
    """Renders the edited text."""
    return "".join(piece.text for piece in self._pieces())

  def __str__(self) -> str:
    return self.to_text()

  def _locate(self, offset: int) -> Tuple[int, int]:
    line = bisect.bisect_right(self._line_starts, offset) - 1
    return line, offset - self._line_starts[line]

  def to_map(self, source: Optional[str] = None, file: Optional[str] = None, include_content: bool = True) -> SourceMap:
    """
    Builds a source map from the edited text back to the original.

    Args:
        source (Optional[str]): Name recorded for the original file.
        file (Optional[str]): Name recorded for the generated file.
        include_content (bool): Whether to inline the original text.
    """
    lines: List[List[Tuple[int, int, int]]] = [[]]
    column = 0

    def mark(origin: int) -> None:
      line, col = self._locate(origin)
      lines[-1].append((column, line, col))

    for piece in self._pieces():
      if not piece.text:
        continue
      if piece.origin is not None:
        mark(piece.origin)
      for index, char in enumerate(piece.text):
        if char != "\n":
          column += 1
          continue
        lines.append([])
        column = 0
        # Unedited text keeps a segment at the start of each line.
        if piece.origin is not None and not piece.edited and index + 1 < len(piece.text):
          mark(piece.origin + index + 1)

    encoded_lines = []
    previous = [0, 0, 0]  # source line, source column, (source index is always 0)
    for segments in lines:
      previous_column = 0
      encoded = []
      for gen_column, orig_line, orig_column in segments:
        encoded.append(
          encode_vlq(gen_column - previous_column)
          + encode_vlq(0)
          + encode_vlq(orig_line - previous[0])
          + encode_vlq(orig_column - previous[1])
        )
        previous_column = gen_column
        previous = [orig_line, orig_column, 0]
      encoded_lines.append(",".join(encoded))

    return SourceMap(
      file=file,
      sources=[source],
      sources_content=[self.original] if include_content else [None],
      mappings=";".join(encoded_lines),
    )
