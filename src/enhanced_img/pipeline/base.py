"""
Asset Pipeline Protocol.

Defines the capability the transformer consumes to turn an asset reference
into a generated descriptor module. Concrete pipelines subclass
`AssetPipeline`; any object exposing compatible `resolve_id` and `load`
callables (plain or coroutine functions) is accepted as well.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, Optional, Union


@dataclass(frozen=True)
class ResolvedId:
  """
  Canonical identity of a resolved asset.

  Attributes:
      id (str): Pipeline-specific identifier passed back to `load`.
  """

  id: str


ResolveResult = Optional[Union[ResolvedId, str, Mapping[str, Any]]]
LoadResult = Optional[Union[str, Mapping[str, Any]]]


class AssetPipeline(ABC):
  """
  Abstract base class for asset pipelines.
  """

  @abstractmethod
  def resolve_id(self, specifier: str, importer: Optional[str]) -> Union[ResolveResult, Awaitable[ResolveResult]]:
    """
    Resolves a reference found in a template.

    Args:
        specifier (str): The reference, including its query string.
        importer (Optional[str]): Path of the template that contains the reference.

    Returns:
        The canonical id, or None if the reference is not handled by this pipeline.
    """
    pass

  @abstractmethod
  def load(self, resolved_id: str) -> Union[LoadResult, Awaitable[LoadResult]]:
    """
    Loads the generated module for a resolved id.

    Args:
        resolved_id (str): Value previously returned by `resolve_id`.

    Returns:
        The module source text (or a mapping with a `code` entry), or None if
        the asset could not be produced.
    """
    pass
