"""
Tests for the Local Filesystem Pipeline.

Verifies:
1. Resolution relative to the importer, the assets root and absent files.
2. Raster descriptors probed with Pillow in the unquoted-key dialect.
3. Width hints scale the display size without upscaling.
4. Non-raster files load as a URL string.
5. End-to-end transform through the preprocessor.
"""

from pathlib import Path

import pytest
from PIL import Image

import enhanced_img
from enhanced_img.config import TransformConfig
from enhanced_img.core.resolver import parse_asset_module
from enhanced_img.pipeline.local import LocalAssetPipeline, render_object


@pytest.fixture
def site(tmp_path: Path) -> Path:
  """A tiny site with a PNG, a JPEG and an SVG under `lib/assets`."""
  assets = tmp_path / "lib" / "assets"
  assets.mkdir(parents=True)
  Image.new("RGB", (400, 200), "red").save(assets / "hero.png")
  Image.new("RGB", (120, 90), "blue").save(assets / "photo.jpg", format="JPEG")
  (assets / "logo.svg").write_text("<svg xmlns='http://www.w3.org/2000/svg'/>", encoding="utf-8")
  (tmp_path / "routes").mkdir()
  return tmp_path


def test_render_object_dialect():
  assert render_object({"a": {"b": "x y"}, "n": [1, 2]}) == '{a:{b:"x y"},n:[1,2]}'


def test_resolve_relative_to_importer(site):
  pipeline = LocalAssetPipeline(root=site)
  importer = str(site / "routes" / "+page.svelte")
  resolved = pipeline.resolve_id("../lib/assets/hero.png?enhanced", importer)
  assert resolved.id == f"{(site / 'lib' / 'assets' / 'hero.png').resolve()}?enhanced"


def test_resolve_rooted_reference(site):
  pipeline = LocalAssetPipeline(root=site)
  resolved = pipeline.resolve_id("/lib/assets/photo.jpg", None)
  assert resolved.id == str((site / "lib" / "assets" / "photo.jpg").resolve())


@pytest.mark.parametrize("specifier", ["./nope.png?enhanced", "https://cdn.example.com/a.png", ""])
def test_unresolvable_references(site, specifier):
  pipeline = LocalAssetPipeline(root=site)
  assert pipeline.resolve_id(specifier, str(site / "routes" / "a.svelte")) is None


def test_load_raster_descriptor(site):
  pipeline = LocalAssetPipeline(root=site, base_url="/static/")
  path = (site / "lib" / "assets" / "hero.png").resolve()
  code = pipeline.load(f"{path}?enhanced")
  assert code == 'export default {sources:{png:"/static/lib/assets/hero.png 400w"},img:{src:"/static/lib/assets/hero.png",w:400,h:200}};'
  assert parse_asset_module(code)["img"]["h"] == 200


def test_load_jpeg_format_name(site):
  pipeline = LocalAssetPipeline(root=site)
  descriptor = parse_asset_module(pipeline.load(str((site / "lib" / "assets" / "photo.jpg").resolve())))
  assert list(descriptor["sources"]) == ["jpeg"]


def test_width_hint_scales_without_upscaling(site):
  pipeline = LocalAssetPipeline(root=site)
  path = (site / "lib" / "assets" / "hero.png").resolve()

  scaled = parse_asset_module(pipeline.load(f"{path}?imgWidth=100&enhanced"))
  assert scaled["img"]["w"] == 100
  assert scaled["img"]["h"] == 50
  assert scaled["sources"]["png"].endswith(" 400w")

  unscaled = parse_asset_module(pipeline.load(f"{path}?imgWidth=4000&enhanced"))
  assert unscaled["img"]["w"] == 400


def test_load_vector_as_url(site):
  pipeline = LocalAssetPipeline(root=site)
  code = pipeline.load(f"{(site / 'lib' / 'assets' / 'logo.svg').resolve()}?enhanced")
  assert code == 'export default "/lib/assets/logo.svg";'


def test_load_unreadable_raster_returns_none(site):
  broken = site / "lib" / "assets" / "broken.png"
  broken.write_bytes(b"not an image")
  assert LocalAssetPipeline(root=site).load(str(broken.resolve())) is None


def test_from_config(site):
  config = TransformConfig(assets_root=site, base_url="/a/", optimizable_formats=["png"])
  pipeline = LocalAssetPipeline.from_config(config)
  assert pipeline.root == site.resolve()
  assert pipeline.base_url == "/a/"
  assert not pipeline.raster_pattern.match("x.jpg")


def test_end_to_end_transform(site):
  page = site / "routes" / "+page.svelte"
  content = (
    "<script>\n  export let data;\n</script>\n"
    '<enhanced:img src="../lib/assets/hero.png" alt="Hero" />\n'
    '<enhanced:img src="/lib/assets/logo.svg" alt="Logo" />\n'
  )
  result = enhanced_img.transform(content, LocalAssetPipeline(root=site), filename=str(page))

  assert result.code.startswith(
    "<script>const ___ASSET___0 = "
    '{"sources":{"png":"/lib/assets/hero.png 400w"},"img":{"src":"/lib/assets/hero.png","w":400,"h":200}};'
    'const ___ASSET___1 = "/lib/assets/logo.svg";\n  export let data;'
  )
  assert '<enhanced:img src="{___ASSET___1}" alt="Logo" />' in result.code
  assert "<img src={___ASSET___0.img.src} alt=\"Hero\" width={___ASSET___0.img.w}" in result.code
