"""
Enumerations for enhanced-img.

This module defines the standard enumerations shared by the markup parser
and the rewrite driver.
"""

from enum import Enum


class AttributeKind(str, Enum):
  """
  Categorization of entries in an element's attribute list.

  Only `ATTRIBUTE` entries are visible to the attribute reader; spreads and
  directives are carried through verbatim when a fragment is generated.
  """

  ATTRIBUTE = "Attribute"
  SPREAD = "Spread"
  DIRECTIVE = "Directive"  # on:click, bind:value, class:active, ...


class ValueKind(str, Enum):
  """Kinds of tokens making up an attribute value."""

  TEXT = "Text"
  MUSTACHE = "MustacheTag"


class FileStatus(str, Enum):
  """Outcome of processing one template file from the command line."""

  TRANSFORMED = "transformed"
  UNCHANGED = "unchanged"
  FAILED = "failed"
