"""
Tests for the Edit Buffer and Source Maps.

Verifies:
1. Overwrites and insertions are addressed in original coordinates.
2. Conflicting edits raise EditConflictError.
3. Source map segments point back to original lines and columns.
4. Serialization helpers (dict, JSON, data URL).
"""

import base64
import json

import pytest

from enhanced_img.core.edit_buffer import EditBuffer, decode_mappings, encode_vlq
from enhanced_img.core.errors import EditConflictError


def test_unchanged_buffer():
  buffer = EditBuffer("hello")
  assert not buffer.has_changed()
  assert buffer.to_text() == "hello"


def test_edits_use_original_offsets():
  buffer = EditBuffer("abcdef")
  buffer.overwrite(4, 6, "XYZW")
  buffer.overwrite(0, 1, "")
  buffer.insert_left(2, "+")
  assert buffer.to_text() == "b+cdXYZW"
  assert buffer.has_changed()


def test_insert_order_and_append():
  buffer = EditBuffer("<script>x</script>")
  buffer.insert_left(8, "a;")
  buffer.insert_left(8, "b;")
  buffer.append("<!-- end -->")
  assert str(buffer) == "<script>a;b;x</script><!-- end -->"


def test_insert_before_overwrite_at_same_position():
  buffer = EditBuffer("0123")
  buffer.overwrite(1, 3, "__")
  buffer.insert_left(1, "^")
  assert buffer.to_text() == "0^__3"


def test_overlapping_overwrite_rejected():
  buffer = EditBuffer("0123456789")
  buffer.overwrite(2, 6, "x")
  with pytest.raises(EditConflictError):
    buffer.overwrite(5, 8, "y")
  with pytest.raises(EditConflictError):
    buffer.overwrite(0, 3, "y")
  buffer.overwrite(6, 8, "adjacent is fine")


def test_insert_inside_overwrite_rejected():
  buffer = EditBuffer("0123456789")
  buffer.overwrite(2, 6, "x")
  with pytest.raises(EditConflictError):
    buffer.insert_left(4, "y")
  buffer.insert_left(6, "boundary is fine")


def test_overwrite_swallowing_insert_rejected():
  buffer = EditBuffer("0123456789")
  buffer.insert_left(4, "y")
  with pytest.raises(EditConflictError):
    buffer.overwrite(2, 6, "x")


def test_invalid_ranges_rejected():
  buffer = EditBuffer("abc")
  with pytest.raises(EditConflictError):
    buffer.overwrite(1, 1, "x")
  with pytest.raises(EditConflictError):
    buffer.overwrite(2, 9, "x")
  with pytest.raises(EditConflictError):
    buffer.insert_left(-1, "x")


@pytest.mark.parametrize("value, encoded", [(0, "A"), (1, "C"), (-1, "D"), (15, "e"), (16, "gB"), (-17, "jB")])
def test_encode_vlq(value, encoded):
  assert encode_vlq(value) == encoded


def test_map_for_unedited_lines():
  buffer = EditBuffer("ab\ncd\n")
  lines = decode_mappings(buffer.to_map().mappings)
  assert lines[0] == [(0, 0, 0, 0)]
  assert lines[1] == [(0, 0, 1, 0)]


def test_map_tracks_overwrite_and_following_text():
  original = "<p>\n<enhanced:img src=\"a.png\" />\n<span>x</span>"
  start = original.index("<enhanced")
  end = original.index("\n<span>")
  buffer = EditBuffer(original)
  buffer.overwrite(start, end, "<picture>\n\t<img />\n</picture>")
  output = buffer.to_text()
  lines = decode_mappings(buffer.to_map().mappings)

  assert output.splitlines()[1] == "<picture>"
  # Overwrite start maps to the element in the original.
  assert lines[1][0] == (0, 0, 1, 0)
  # Lines generated inside the replacement carry no segments.
  assert lines[2] == []
  # Text after the replacement continues on its own original position.
  assert lines[3][0] == (10, 0, 1, end - start)
  assert lines[4] == [(0, 0, 2, 0)]


def test_map_skips_inserted_text():
  buffer = EditBuffer("<script>x</script>")
  buffer.insert_left(8, "const A = 1;")
  lines = decode_mappings(buffer.to_map().mappings)
  assert lines[0] == [(0, 0, 0, 0), (20, 0, 0, 8)]


def test_map_serialization():
  buffer = EditBuffer("abc")
  buffer.overwrite(0, 1, "A")
  source_map = buffer.to_map(source="App.svelte", file="App.svelte")

  data = source_map.to_dict()
  assert data["version"] == 3
  assert data["sources"] == ["App.svelte"]
  assert data["sourcesContent"] == ["abc"]
  assert json.loads(source_map.to_json()) == data

  prefix = "data:application/json;charset=utf-8;base64,"
  url = source_map.to_url()
  assert url.startswith(prefix)
  assert json.loads(base64.b64decode(url[len(prefix) :])) == data


def test_map_without_content():
  source_map = EditBuffer("abc").to_map(include_content=False)
  assert source_map.to_dict()["sourcesContent"] == [None]
