"""
Exception Hierarchy.

Every failure raised by the transformer derives from `EnhancedImgError` so
callers can report a whole file as failed with a single handler. Non-fatal
outcomes (an unresolvable asset, a missing `src`) are not exceptions; they
simply leave the element untouched.
"""

from typing import Optional


class EnhancedImgError(Exception):
  """Base class for all errors raised while transforming a template."""


class MarkupSyntaxError(EnhancedImgError, SyntaxError):
  """
  Raised when the template source cannot be parsed.

  The standard `SyntaxError` fields are populated, so `str(error)` reads
  like `"<img> was left open (App.svelte, line 3)"`.

  Attributes:
      message (str): Human readable description.
      position (int): Character offset of the failure in the source.
      line (int): 1-based line number.
      column (int): 0-based column number.
  """

  def __init__(self, message: str, source: str, position: int, filename: Optional[str] = None):
    super().__init__(message)
    self.message = message
    self.position = position
    self.line = source.count("\n", 0, position) + 1
    self.column = position - (source.rfind("\n", 0, position) + 1)
    self.filename = filename
    self.lineno = self.line
    self.offset = self.column + 1


class PipelineConfigurationError(EnhancedImgError):
  """Raised when the asset pipeline is missing a capability or cannot load a resolved asset."""


class DescriptorParseError(EnhancedImgError, ValueError):
  """
  Raised when generated asset module text cannot be decoded into a descriptor.

  Attributes:
      text (str): The normalized text that failed strict parsing.
  """

  def __init__(self, message: str, text: str):
    self.text = text
    super().__init__(message)


class EditConflictError(EnhancedImgError, ValueError):
  """Raised when an edit overlaps a range that has already been overwritten."""
