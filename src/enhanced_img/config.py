"""
Runtime Configuration Store.

Settings are read from the `[tool.enhanced_img]` table of the nearest
`pyproject.toml` and may be overridden by keyword arguments (the CLI passes
its flags this way).

Example::

    [tool.enhanced_img]
    tag_name = "enhanced:img"
    pipeline = "my_site.images:create_pipeline"
    assets_root = "src/lib/assets"
    base_url = "/assets/"
"""

import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  try:
    import tomli as tomllib
  except ImportError:
    tomllib = None  # type: ignore

DEFAULT_TAG_NAME = "enhanced:img"
DEFAULT_ASSET_PREFIX = "___ASSET___"
DEFAULT_MARKER = "enhanced"
DEFAULT_OPTIMIZABLE_FORMATS = ["avif", "heif", "gif", "jpeg", "jpg", "png", "tiff", "webp"]

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


class TransformConfig(BaseModel):
  """
  Configuration container for the image preprocessor.
  """

  tag_name: str = Field(DEFAULT_TAG_NAME, description="Element name that marks images for optimization.")
  asset_prefix: str = Field(DEFAULT_ASSET_PREFIX, description="Prefix of the hoisted descriptor constants.")
  marker: str = Field(DEFAULT_MARKER, description="Query token appended to every asset reference key.")
  optimizable_formats: List[str] = Field(
    default_factory=lambda: list(DEFAULT_OPTIMIZABLE_FORMATS),
    description="File extensions that receive the multi-format <picture> rewrite.",
  )
  pipeline: Optional[str] = Field(None, description="Asset pipeline factory as 'package.module:callable'.")
  assets_root: Optional[Path] = Field(None, description="Root directory for the local pipeline.")
  base_url: str = Field("/", description="Public URL prefix used by the local pipeline.")

  @field_validator("tag_name")
  @classmethod
  def validate_tag_name(cls, v: str) -> str:
    """
    Ensures the tag name is usable in markup.

    Raises:
        ValueError: If the name is empty or contains whitespace or brackets.
    """
    v_clean = v.strip()
    if not v_clean or re.search(r"[\s<>/]", v_clean):
      raise ValueError(f"Invalid tag name: '{v}'")
    return v_clean

  @field_validator("asset_prefix")
  @classmethod
  def validate_asset_prefix(cls, v: str) -> str:
    """
    Ensures generated constant names are valid script identifiers.

    Raises:
        ValueError: If the prefix is not an identifier.
    """
    if not _IDENTIFIER.match(v):
      raise ValueError(f"Asset prefix must be a valid identifier, got '{v}'")
    return v

  @field_validator("optimizable_formats")
  @classmethod
  def validate_formats(cls, v: List[str]) -> List[str]:
    """Strips whitespace and leading dots, dropping empty entries."""
    cleaned = [fmt.strip().lstrip(".") for fmt in v]
    return [fmt for fmt in cleaned if fmt]

  @property
  def opening_marker(self) -> str:
    """Text whose absence lets the preprocessor skip a file untouched."""
    return f"<{self.tag_name}"

  @property
  def optimizable_pattern(self) -> Pattern[str]:
    """
    Anchored pattern matching references to optimizable rasters.

    The extension must end the path; a trailing query string is ignored.
    """
    alternatives = "|".join(re.escape(fmt) for fmt in self.optimizable_formats)
    return re.compile(rf"^[^?]+\.({alternatives})(\?.*)?$")

  @classmethod
  def load(cls, search_path: Optional[Path] = None, **overrides: Any) -> "TransformConfig":
    """
    Loads configuration from pyproject.toml and applies overrides.

    Args:
        search_path (Optional[Path]): Directory to start searching for TOML config.
        **overrides: Field values that win over the TOML settings. `None`
            values are ignored so unset CLI flags fall through.

    Returns:
        TransformConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    settings: Dict[str, Any] = dict(toml_config)
    if toml_dir and settings.get("assets_root"):
      settings["assets_root"] = (toml_dir / Path(settings["assets_root"])).resolve()

    settings.update({k: v for k, v in overrides.items() if v is not None})
    return cls(**settings)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches parents for 'pyproject.toml' and extracts the tool section.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  if not tomllib:
    return {}, None

  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      with open(toml_path, "rb") as f:
        data = tomllib.load(f)
      tool_section = data.get("tool", {})
      return tool_section.get("enhanced_img", {}), parent

  return {}, None
