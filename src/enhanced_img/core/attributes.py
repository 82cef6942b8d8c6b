"""
Attribute Reader.

Looks up attribute values on parsed elements. Absence is a normal outcome
(a missing `width`, a boolean attribute) and is reported as `None`.
"""

from typing import Iterable, Optional

from enhanced_img.core.markup.nodes import Attribute, Element, ValueToken
from enhanced_img.enums import AttributeKind


def find_attribute(attributes: Iterable[Attribute], name: str) -> Optional[Attribute]:
  """
  Returns the first plain attribute called `name`.

  Spreads and directives never match.
  """
  for attribute in attributes:
    if attribute.kind == AttributeKind.ATTRIBUTE and attribute.name == name:
      return attribute
  return None


def get_attr_value(node: Element, name: str) -> Optional[ValueToken]:
  """
  Reads the first value token of an element's attribute.

  Args:
      node (Element): The element to inspect.
      name (str): Attribute name, compared case-sensitively.

  Returns:
      Optional[ValueToken]: The first `Text` or `MustacheTag` of the value,
      or None when the attribute is missing or has no value.
  """
  attribute = find_attribute(node.attributes, name)
  if attribute is None or not attribute.value:
    return None
  return attribute.value[0]
