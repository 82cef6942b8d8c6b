"""
Image Preprocessor Engine.

This module provides `ImagePreprocessor`, the driver that rewrites every target
image element of a template into responsive markup.

The pipeline for one template:

1.  **Fast path**: Templates that never mention the target tag are skipped and
    `None` is returned.
2.  **Parsing**: The whole source is parsed once. Malformed markup aborts the
    transform with `MarkupSyntaxError`.
3.  **Walk**: Elements are visited depth-first in document order. Each visit
    may suspend on the asset pipeline; visits never overlap, so generated
    identifiers follow the document order of first occurrence.
4.  **Rewrite**:
    - `src={expr}` becomes a runtime branch between `<img>` and `<picture>`.
    - `src="path"` is resolved once per reference key (path plus `sizes` and
      `width` hints). Optimizable rasters become a `<picture>`; other assets
      only have their `src` value replaced by the descriptor constant.
5.  **Hoisting**: One `const` per resolved asset is inserted at the top of the
    instance `<script>`, or appended in a new `<script>` block.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel, Field

from enhanced_img.config import TransformConfig
from enhanced_img.core.attributes import find_attribute, get_attr_value
from enhanced_img.core.edit_buffer import EditBuffer, SourceMap
from enhanced_img.core.fragments import asset_reference, dynamic_fragment, static_fragment
from enhanced_img.core.markup.nodes import Element, MustacheTag, Root, TemplateNode, Text, ValueToken
from enhanced_img.core.markup.parser import parse
from enhanced_img.core.resolver import AssetResolver

logger = logging.getLogger(__name__)

# Characters left unescaped by ECMAScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class TransformResult(BaseModel):
  """
  Output of a template transform that changed the source.
  """

  code: str = Field(description="The transformed template source.")
  map: SourceMap = Field(description="Source map from the transformed text back to the original.")
  assets: Dict[str, str] = Field(
    default_factory=dict,
    description="Hoisted constant name -> asset reference key, in declaration order.",
  )


@dataclass
class RegisteredAsset:
  """A resolved descriptor and the constant it is hoisted into."""

  name: str
  descriptor: Any


class _Transform:
  """
  State of one transform call: the parsed tree, the edits and the asset registry.
  """

  def __init__(self, preprocessor: "ImagePreprocessor", content: str, filename: Optional[str]):
    self.config = preprocessor.config
    self.resolver = preprocessor.resolver
    self.content = content
    self.filename = filename
    self.buffer = EditBuffer(content)
    self.images: Dict[str, RegisteredAsset] = {}

  async def run(self, ast: Root) -> Optional[TransformResult]:
    pending: List[TemplateNode] = list(reversed(ast.html.children))
    while pending:
      node = pending.pop()
      if isinstance(node, Element) and node.name == self.config.tag_name:
        if await self.update_element(node):
          continue
      pending.extend(reversed(getattr(node, "children", [])))

    if self.images:
      self.hoist(ast)

    if not self.buffer.has_changed():
      return None

    return TransformResult(
      code=self.buffer.to_text(),
      map=self.buffer.to_map(source=self.filename, file=self.filename),
      assets={details.name: key for key, details in self.images.items()},
    )

  async def update_element(self, node: Element) -> bool:
    """
    Rewrites one target element.

    Returns:
        bool: True if the element was rewritten.
    """
    src_attribute = find_attribute(node.attributes, "src")
    src = get_attr_value(node, "src")
    if src is None:
      return False

    if isinstance(src, MustacheTag):
      if len(src_attribute.value) > 1:
        logger.debug("Skipping <%s> at %d: interpolated src", node.name, node.start)
        return False
      expression = src.expression.strip()
      self.buffer.overwrite(node.start, node.end, dynamic_fragment(self.content, node, expression))
      return True

    if len(src_attribute.value) > 1 or not src.raw.strip():
      logger.debug("Skipping <%s> at %d: src is not a plain path", node.name, node.start)
      return False

    url = self.reference_key(node, src)
    details = self.images.get(url)
    if details is None:
      descriptor = await self.resolver.resolve(url, self.filename)
      if descriptor is None:
        logger.debug("Leaving <%s> untouched: %s did not resolve", node.name, url)
        return False
      details = RegisteredAsset(name=f"{self.config.asset_prefix}{len(self.images)}", descriptor=descriptor)
      self.images[url] = details
    else:
      logger.debug("Reusing %s for %s", details.name, url)

    if self.config.optimizable_pattern.match(url):
      self.buffer.overwrite(node.start, node.end, static_fragment(self.content, node, details.name))
    else:
      # e.g. <enhanced:img src="./foo.svg" /> => <enhanced:img src="{___ASSET___0}" />
      self.buffer.overwrite(src.start, src.end, asset_reference(details.name))
    return True

  def reference_key(self, node: Element, src: Text) -> str:
    """
    Builds the deduplication key for a static reference.

    The responsive hints are part of the key so that one image used with
    different `sizes` or `width` resolves to separate descriptors.
    """
    url = src.raw.strip()
    sizes = get_attr_value(node, "sizes")
    width = get_attr_value(node, "width")
    url += "&" if "?" in url else "?"
    if sizes is not None:
      url += "imgSizes=" + quote(self._token_text(sizes), safe=_URI_COMPONENT_SAFE) + "&"
    if width is not None:
      url += "imgWidth=" + quote(self._token_text(width), safe=_URI_COMPONENT_SAFE) + "&"
    url += self.config.marker
    return url

  def _token_text(self, token: ValueToken) -> str:
    if isinstance(token, Text):
      return token.raw
    return self.content[token.start : token.end]

  def hoist(self, ast: Root) -> None:
    """Declares one constant per registered asset, in registration order."""
    const_text = "".join(
      f"const {details.name} = {json.dumps(details.descriptor, separators=(',', ':'), ensure_ascii=False)};"
      for details in self.images.values()
    )
    if ast.instance:
      self.buffer.insert_left(ast.instance.content_start, const_text)
    else:
      self.buffer.append(f"<script>{const_text}</script>")
    logger.debug("Hoisted %d asset declaration(s)", len(self.images))


class ImagePreprocessor:
  """
  The markup preprocessor.

  One instance can transform many templates; no state is shared between calls.
  """

  def __init__(self, pipeline: Union[AssetResolver, Any], config: Optional[TransformConfig] = None):
    """
    Args:
        pipeline: An `AssetResolver`, or an asset pipeline to wrap in one.
        config (TransformConfig, optional): Settings; defaults are used if None.
    """
    self.config = config or TransformConfig()
    self.resolver = pipeline if isinstance(pipeline, AssetResolver) else AssetResolver(pipeline)

  async def markup(self, content: str, filename: Optional[str] = None) -> Optional[TransformResult]:
    """
    Transforms one template.

    Args:
        content (str): Full template source.
        filename (Optional[str]): Template path, passed to the pipeline as importer.

    Returns:
        Optional[TransformResult]: The rewritten source and map, or None when
        nothing was changed.

    Raises:
        MarkupSyntaxError: If the template cannot be parsed.
        PipelineConfigurationError: If a resolved asset cannot be loaded.
        DescriptorParseError: If a loaded descriptor cannot be decoded.
    """
    if self.config.opening_marker not in content:
      return None

    ast = parse(content, filename)
    return await _Transform(self, content, filename).run(ast)
