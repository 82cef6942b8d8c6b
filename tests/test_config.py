"""
Tests for Configuration Loading.

Verifies:
1. Defaults match the conventional tag, prefix and marker.
2. Validation of tag names, identifier prefixes and format lists.
3. `[tool.enhanced_img]` is discovered in parent directories.
4. CLI overrides win and `None` overrides fall through.
"""

import pytest
from pydantic import ValidationError

from enhanced_img.config import TransformConfig


def test_defaults():
  config = TransformConfig()
  assert config.tag_name == "enhanced:img"
  assert config.asset_prefix == "___ASSET___"
  assert config.marker == "enhanced"
  assert config.opening_marker == "<enhanced:img"
  assert config.pipeline is None
  assert config.base_url == "/"


@pytest.mark.parametrize(
  "reference, expected",
  [
    ("./a.png?enhanced", True),
    ("./a.JPG?enhanced", False),
    ("/x/b.webp", True),
    ("./c.avif?imgSizes=100vw&enhanced", True),
    ("./logo.svg?enhanced", False),
    ("./png?enhanced", False),
    ("./a.png.txt", False),
  ],
)
def test_optimizable_pattern(reference, expected):
  assert bool(TransformConfig().optimizable_pattern.match(reference)) is expected


def test_custom_formats_are_cleaned():
  config = TransformConfig(optimizable_formats=[" .svg ", "", "png"])
  assert config.optimizable_formats == ["svg", "png"]
  assert config.optimizable_pattern.match("./logo.svg")


@pytest.mark.parametrize("prefix", ["1abc", "has-dash", ""])
def test_invalid_asset_prefix(prefix):
  with pytest.raises(ValidationError):
    TransformConfig(asset_prefix=prefix)


@pytest.mark.parametrize("tag", ["", "enhanced img", "<img>"])
def test_invalid_tag_name(tag):
  with pytest.raises(ValidationError):
    TransformConfig(tag_name=tag)


def test_load_from_parent_pyproject(tmp_path):
  (tmp_path / "pyproject.toml").write_text(
    '[tool.enhanced_img]\nasset_prefix = "IMG"\nassets_root = "static"\nbase_url = "/assets/"\n',
    encoding="utf-8",
  )
  nested = tmp_path / "src" / "routes"
  nested.mkdir(parents=True)

  config = TransformConfig.load(search_path=nested)
  assert config.asset_prefix == "IMG"
  assert config.assets_root == (tmp_path / "static").resolve()
  assert config.base_url == "/assets/"


def test_overrides_win_and_none_falls_through(tmp_path):
  (tmp_path / "pyproject.toml").write_text('[tool.enhanced_img]\nbase_url = "/assets/"\n', encoding="utf-8")
  config = TransformConfig.load(search_path=tmp_path, base_url="/cdn/", pipeline=None)
  assert config.base_url == "/cdn/"
  assert config.pipeline is None


def test_pyproject_without_section(tmp_path):
  (tmp_path / "pyproject.toml").write_text('[project]\nname = "site"\n', encoding="utf-8")
  assert TransformConfig.load(search_path=tmp_path) == TransformConfig()


def test_invalid_toml_propagates(tmp_path):
  (tmp_path / "pyproject.toml").write_text("[tool.enhanced_img\n", encoding="utf-8")
  with pytest.raises(ValueError):
    TransformConfig.load(search_path=tmp_path)
