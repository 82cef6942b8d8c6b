"""
Local Filesystem Pipeline.

A self-contained `AssetPipeline` for running the preprocessor outside a bundler.
References resolve to files on disk; raster images are probed with Pillow and
described with their original file as the only variant. No re-encoding takes
place, so the generated `<picture>` carries a single `<source>`.

Descriptors are emitted in the same unquoted-key object dialect that bundler
pipelines produce, so they travel through the regular decoding path.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Pattern, Tuple
from urllib.parse import parse_qs, quote

from PIL import Image, UnidentifiedImageError

from enhanced_img.config import TransformConfig
from enhanced_img.pipeline.base import AssetPipeline, ResolvedId

logger = logging.getLogger(__name__)

_REMOTE_PREFIXES = ("http://", "https://", "//", "data:")


def render_object(value: Any) -> str:
  """Renders a JSON-compatible value with unquoted object keys."""
  if isinstance(value, dict):
    return "{" + ",".join(f"{key}:{render_object(item)}" for key, item in value.items()) + "}"
  if isinstance(value, list):
    return "[" + ",".join(render_object(item) for item in value) + "]"
  return json.dumps(value, ensure_ascii=False)


class LocalAssetPipeline(AssetPipeline):
  """
  Resolves references against the filesystem.

  Attributes:
      root (Path): Directory that absolute references (`/img/a.png`) start from,
          and that public URLs are made relative to.
      base_url (str): Public URL prefix for files under `root`.
  """

  def __init__(self, root: Path, base_url: str = "/", raster_pattern: Optional[Pattern[str]] = None):
    self.root = Path(root).resolve()
    self.base_url = base_url
    self.raster_pattern = raster_pattern or TransformConfig().optimizable_pattern

  @classmethod
  def from_config(cls, config: TransformConfig) -> "LocalAssetPipeline":
    """Builds a pipeline from `assets_root`, `base_url` and the optimizable formats."""
    return cls(
      root=config.assets_root or Path.cwd(),
      base_url=config.base_url,
      raster_pattern=config.optimizable_pattern,
    )

  def resolve_id(self, specifier: str, importer: Optional[str]) -> Optional[ResolvedId]:
    path_part, _, query = specifier.partition("?")
    if not path_part or path_part.startswith(_REMOTE_PREFIXES):
      return None

    if path_part.startswith("/"):
      candidate = self.root / path_part.lstrip("/")
    elif importer:
      candidate = Path(importer).parent / path_part
    else:
      candidate = self.root / path_part

    candidate = candidate.resolve()
    if not candidate.is_file():
      logger.debug("No file for %s (looked at %s)", specifier, candidate)
      return None
    return ResolvedId(f"{candidate}?{query}" if query else str(candidate))

  def load(self, resolved_id: str) -> Optional[str]:
    path_str, _, query = resolved_id.partition("?")
    path = Path(path_str)
    if not path.is_file():
      return None

    url = self.public_url(path)
    if not self.raster_pattern.match(path.name):
      return f"export default {json.dumps(url, ensure_ascii=False)};"

    try:
      fmt, width, height = self._probe(path)
    except (OSError, UnidentifiedImageError) as e:
      logger.warning("Cannot read image %s: %s", path, e)
      return None

    display_width, display_height = self._apply_width_hint(width, height, parse_qs(query))
    descriptor: Dict[str, Any] = {
      "sources": {fmt: f"{url} {width}w"},
      "img": {"src": url, "w": display_width, "h": display_height},
    }
    return f"export default {render_object(descriptor)};"

  def public_url(self, path: Path) -> str:
    """Maps a file to its public URL under `base_url`."""
    try:
      relative = path.resolve().relative_to(self.root).as_posix()
    except ValueError:
      relative = path.name
    return self.base_url.rstrip("/") + "/" + quote(relative)

  @staticmethod
  def _probe(path: Path) -> Tuple[str, int, int]:
    with Image.open(path) as image:
      width, height = image.size
      fmt = (image.format or path.suffix.lstrip(".")).lower()
    return fmt, int(width), int(height)

  @staticmethod
  def _apply_width_hint(width: int, height: int, params: Dict[str, list]) -> Tuple[int, int]:
    hint = params.get("imgWidth", [None])[0]
    try:
      target = int(hint) if hint else 0
    except ValueError:
      return width, height
    if 0 < target < width:
      return target, round(height * target / width)
    return width, height
