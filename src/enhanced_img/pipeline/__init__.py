"""
Asset Pipelines.

Provides the pipeline protocol, the built-in filesystem pipeline and the loader
that instantiates a custom pipeline named in configuration.

Custom pipelines are referenced as `package.module:factory` or
`path/to/file.py:factory`. The factory is called with the active
`TransformConfig` and must return an object exposing `resolve_id` and `load`.
"""

import importlib
import importlib.util
import sys
from pathlib import Path
from typing import Any, Optional

from enhanced_img.config import TransformConfig
from enhanced_img.core.errors import PipelineConfigurationError
from enhanced_img.pipeline.base import AssetPipeline, ResolvedId
from enhanced_img.pipeline.local import LocalAssetPipeline


def _import_target(module_ref: str) -> Any:
  if module_ref.endswith(".py"):
    path = Path(module_ref).resolve()
    unique_name = f"enhanced_img_pipeline_{path.stem}_{path.stat().st_ino}"
    spec = importlib.util.spec_from_file_location(unique_name, path)
    if not spec or not spec.loader:
      raise ImportError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[unique_name] = module
    spec.loader.exec_module(module)
    return module
  return importlib.import_module(module_ref)


def load_pipeline(reference: Optional[str], config: TransformConfig) -> Any:
  """
  Instantiates the asset pipeline selected by the configuration.

  Args:
      reference (Optional[str]): Factory as `module:factory`. When unset the
          built-in `LocalAssetPipeline` is used.
      config (TransformConfig): Active settings, passed to the factory.

  Returns:
      Any: The pipeline instance.

  Raises:
      PipelineConfigurationError: If the factory reference cannot be imported or called.
  """
  if not reference:
    return LocalAssetPipeline.from_config(config)

  module_ref, sep, attr = reference.rpartition(":")
  if not sep or not module_ref or not attr:
    raise PipelineConfigurationError(f"Pipeline must be given as 'module:factory', got '{reference}'")

  try:
    module = _import_target(module_ref)
  except (ImportError, OSError) as e:
    raise PipelineConfigurationError(f"Cannot import pipeline module '{module_ref}': {e}") from e

  factory = getattr(module, attr, None)
  if not callable(factory):
    raise PipelineConfigurationError(f"'{attr}' in '{module_ref}' is not callable")
  return factory(config)


__all__ = ["AssetPipeline", "LocalAssetPipeline", "ResolvedId", "load_pipeline"]
