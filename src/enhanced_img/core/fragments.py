"""
Markup Fragment Generators.

Pure string templates producing the markup that replaces a target element.
Attributes are copied verbatim from the original source except `src`, which is
rebound to the descriptor. The block and expression delimiters are those of the
host template syntax and must be emitted exactly as written here.
"""

from typing import List, Optional, Sequence

from enhanced_img.core.attributes import find_attribute
from enhanced_img.core.markup.nodes import Attribute, Element
from enhanced_img.enums import AttributeKind


def render_attributes(
  content: str,
  attributes: Sequence[Attribute],
  src_markup: str,
  dimensions_from: Optional[str] = None,
) -> str:
  """
  Serializes an attribute list for a generated `<img>`.

  Args:
      content (str): The original template source.
      attributes (Sequence[Attribute]): Attributes to emit, in order.
      src_markup (str): Replacement text for the `src` attribute.
      dimensions_from (Optional[str]): Descriptor expression to read `w`/`h`
          from when the element declares neither `width` nor `height`.

  Returns:
      str: Space separated attribute text.
  """
  parts: List[str] = []
  for attribute in attributes:
    if attribute.kind == AttributeKind.ATTRIBUTE and attribute.name == "src":
      parts.append(src_markup)
    else:
      parts.append(content[attribute.start : attribute.end])

  if dimensions_from is not None:
    if find_attribute(attributes, "width") is None and find_attribute(attributes, "height") is None:
      parts.append(f"width={{{dimensions_from}.img.w}}")
      parts.append(f"height={{{dimensions_from}.img.h}}")

  return " ".join(parts)


def static_fragment(content: str, node: Element, var_name: str) -> str:
  """
  Renders a `<picture>` with one `<source>` per format of the descriptor.

  `sizes` moves from the fallback `<img>` onto every `<source>`.

  Args:
      content (str): The original template source.
      node (Element): The element being replaced.
      var_name (str): Expression evaluating to the asset descriptor.
  """
  attributes = list(node.attributes)
  sizes = find_attribute(attributes, "sizes")
  sizes_string = ""
  if sizes is not None:
    sizes_string = " " + content[sizes.start : sizes.end]
    attributes = [attribute for attribute in attributes if attribute is not sizes]

  img_attributes = render_attributes(content, attributes, f"src={{{var_name}.img.src}}", dimensions_from=var_name)
  return f"""<picture>
\t{{#each Object.entries({var_name}.sources) as [format, srcset]}}
\t\t<source {{srcset}}{sizes_string} type={{'image/' + format}} />
\t{{/each}}
\t<img {img_attributes} />
</picture>"""


def dynamic_fragment(content: str, node: Element, src_expression: str) -> str:
  """
  Renders a runtime branch for an expression-bound `src`.

  A string value renders a plain `<img>`; anything else is treated as an
  already resolved descriptor and renders the `<picture>` form.

  Args:
      content (str): The original template source.
      node (Element): The element being replaced.
      src_expression (str): The trimmed expression bound to `src`.
  """
  plain_attributes = render_attributes(content, node.attributes, f"src={{{src_expression}}}")
  return f"""{{#if typeof {src_expression} === 'string'}}
\t<img {plain_attributes} />
{{:else}}
\t{static_fragment(content, node, src_expression)}
{{/if}}"""


def asset_reference(var_name: str) -> str:
  """Renders the expression that replaces a non-optimizable `src` value."""
  return f"{{{var_name}}}"
