"""
enhanced-img Package.

A template preprocessor that rewrites `<enhanced:img>` elements into responsive
`<picture>` markup, hoisting one descriptor constant per referenced asset.

Usage
-----

Simple String Transform
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import enhanced_img
    from enhanced_img.pipeline import LocalAssetPipeline

    pipeline = LocalAssetPipeline(root="src/lib/assets")
    result = enhanced_img.transform('<enhanced:img src="./a.png" alt="A" />', pipeline, filename="src/App.svelte")
    if result:
        print(result.code)

Async Usage
^^^^^^^^^^^

.. code-block:: python

    from enhanced_img import ImagePreprocessor

    preprocessor = ImagePreprocessor(pipeline)
    result = await preprocessor.markup(content, filename="src/App.svelte")
"""

import asyncio
from typing import Any, Optional

from enhanced_img.config import TransformConfig
from enhanced_img.core.engine import ImagePreprocessor, TransformResult

__version__ = "0.0.1"


def transform(
  content: str,
  pipeline: Any,
  filename: Optional[str] = None,
  config: Optional[TransformConfig] = None,
) -> Optional[TransformResult]:
  """
  Transforms one template synchronously.

  This is a convenience wrapper that drives `ImagePreprocessor.markup` with
  `asyncio.run`, so it must not be called from inside a running event loop.

  Args:
      content (str): Full template source.
      pipeline (Any): Asset pipeline exposing `resolve_id` and `load`.
      filename (str, optional): Template path, used as the importer for
          relative references and as the source map name.
      config (TransformConfig, optional): Settings; defaults are used if None.

  Returns:
      Optional[TransformResult]: The rewritten template, or None when the
      template needed no changes.
  """
  preprocessor = ImagePreprocessor(pipeline, config=config)
  return asyncio.run(preprocessor.markup(content, filename=filename))


__all__ = [
  "ImagePreprocessor",
  "TransformConfig",
  "TransformResult",
  "transform",
  "__version__",
]
