"""
Asset Resolver Adapter.

Bridges the rewrite driver and an external asset pipeline: resolves a
reference, loads the generated descriptor module and decodes it.

The pipeline renders descriptors as a default-exported object literal with
unquoted keys, e.g.::

    export default {sources:{avif:"/a.avif 640w, /b.avif 1280w"},img:{src:"/a.jpg",w:640,h:480}};

`parse_object` normalizes that dialect into JSON before strict decoding.
"""

import inspect
import json
import logging
import re
from typing import Any, Mapping, Optional

from enhanced_img.core.errors import DescriptorParseError, PipelineConfigurationError
from enhanced_img.pipeline.base import ResolvedId

logger = logging.getLogger(__name__)

# Bare keys (`w`, `2x`, `image/avif`) directly after an opening brace or a comma.
_BARE_KEY = r'[^\s"{}\[\],:]+'
_BRACE_KEY = re.compile(r"\{(\s*)(" + _BARE_KEY + r")(\s*):")
_COMMA_KEY = re.compile(r",(" + _BARE_KEY + r"):")


async def _settle(value: Any) -> Any:
  if inspect.isawaitable(value):
    return await value
  return value


def _canonical_id(resolved: Any) -> Optional[str]:
  if not resolved:
    return None
  if isinstance(resolved, str):
    return resolved
  if isinstance(resolved, ResolvedId):
    return resolved.id or None
  if isinstance(resolved, Mapping):
    return resolved.get("id") or None
  return getattr(resolved, "id", None) or None


def _module_code(module_info: Any) -> str:
  if isinstance(module_info, str):
    return module_info
  if isinstance(module_info, Mapping):
    return module_info["code"]
  return module_info.code


def parse_object(text: str) -> Any:
  """
  Decodes the unquoted-key object dialect emitted by asset pipelines.

  Args:
      text (str): Object literal text without the `export default` prefix.

  Returns:
      Any: The decoded value (usually a dict).

  Raises:
      DescriptorParseError: If the normalized text is not valid JSON.
  """
  normalized = _BRACE_KEY.sub(r'{\1"\2"\3:', text)
  normalized = _COMMA_KEY.sub(r',"\1":', normalized)
  try:
    return json.loads(normalized)
  except json.JSONDecodeError as e:
    raise DescriptorParseError(f"Unrecognized asset descriptor format: {e}", normalized) from e


def parse_asset_module(code: str) -> Any:
  """Strips the module wrapper around a descriptor and decodes it."""
  body = code.replace("export default", "", 1).strip()
  if body.endswith(";"):
    body = body[:-1]
  return parse_object(body)


class AssetResolver:
  """
  Resolves asset references through a pipeline.

  No caching happens here; the driver deduplicates by reference key.
  """

  def __init__(self, pipeline: Any):
    """
    Args:
        pipeline: An `AssetPipeline` or any object exposing `resolve_id`
            and `load` callables (sync or async).
    """
    self.pipeline = pipeline

  async def resolve(self, reference: str, importer: Optional[str]) -> Optional[Any]:
    """
    Resolves and loads one asset reference.

    Args:
        reference (str): The asset reference key, query string included.
        importer (Optional[str]): Path of the template being transformed.

    Returns:
        Optional[Any]: The decoded descriptor, or None when the pipeline does
        not recognize the reference.

    Raises:
        PipelineConfigurationError: If the pipeline cannot load a resolved id.
        DescriptorParseError: If the loaded module cannot be decoded.
    """
    resolved = await _settle(self.pipeline.resolve_id(reference, importer))
    canonical = _canonical_id(resolved)
    if not canonical:
      logger.debug("Pipeline did not resolve %s", reference)
      return None

    load = getattr(self.pipeline, "load", None)
    if not callable(load):
      raise PipelineConfigurationError("Invalid asset pipeline. Could not find load method.")

    module_info = await _settle(load(canonical))
    if not module_info:
      raise PipelineConfigurationError(f"Could not load {canonical}")

    return parse_asset_module(_module_code(module_info))
