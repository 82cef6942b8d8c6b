"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- An in-memory asset pipeline that records its calls.
- Console capture for CLI output assertions.
"""

import io
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
from rich.console import Console

# Add src to path so we can import 'enhanced_img' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from enhanced_img.pipeline.base import AssetPipeline, ResolvedId
from enhanced_img.utils.console import reset_console, set_console


def raster_module(name: str, width: int, height: int) -> str:
  """Builds descriptor module text in the unquoted-key dialect."""
  return (
    "export default "
    f'{{sources:{{avif:"/_app/{name}.avif {width}w",webp:"/_app/{name}.webp {width}w"}},'
    f'img:{{src:"/_app/{name}.png",w:{width},h:{height}}}}};'
  )


class FakePipeline(AssetPipeline):
  """
  In-memory pipeline keyed by the path part of a reference.

  Attributes:
      modules: Path -> module text (or None to simulate a failed load).
      resolve_calls: Recorded `(specifier, importer)` pairs.
      load_calls: Recorded resolved ids.
  """

  def __init__(self, modules: Optional[Dict[str, Optional[str]]] = None):
    self.modules = modules if modules is not None else {}
    self.resolve_calls: List[Tuple[str, Optional[str]]] = []
    self.load_calls: List[str] = []

  def resolve_id(self, specifier: str, importer: Optional[str]) -> Optional[ResolvedId]:
    self.resolve_calls.append((specifier, importer))
    path = specifier.split("?", 1)[0]
    if path not in self.modules:
      return None
    return ResolvedId(f"virtual:{specifier}")

  def load(self, resolved_id: str) -> Optional[str]:
    self.load_calls.append(resolved_id)
    path = resolved_id[len("virtual:") :].split("?", 1)[0]
    return self.modules[path]


class AsyncFakePipeline(FakePipeline):
  """Same as FakePipeline with coroutine capabilities."""

  async def resolve_id(self, specifier: str, importer: Optional[str]) -> Optional[ResolvedId]:
    return super().resolve_id(specifier, importer)

  async def load(self, resolved_id: str) -> Optional[str]:
    return super().load(resolved_id)


DEFAULT_MODULES = {
  "./a.png": raster_module("a", 640, 480),
  "./b.jpg": raster_module("b", 1024, 768),
  "./logo.svg": 'export default "/_app/logo.svg";',
}


@pytest.fixture
def fake_pipeline() -> FakePipeline:
  """A synchronous pipeline knowing `./a.png`, `./b.jpg` and `./logo.svg`."""
  return FakePipeline(dict(DEFAULT_MODULES))


@pytest.fixture
def async_pipeline() -> AsyncFakePipeline:
  """A coroutine-based pipeline with the same assets as `fake_pipeline`."""
  return AsyncFakePipeline(dict(DEFAULT_MODULES))


@pytest.fixture
def captured_console():
  """
  Routes console and logging output into a buffer for the duration of a test.

  Yields:
      io.StringIO: The buffer receiving output.
  """
  buffer = io.StringIO()
  set_console(Console(file=buffer, width=200, force_terminal=False, color_system=None))
  yield buffer
  reset_console()
