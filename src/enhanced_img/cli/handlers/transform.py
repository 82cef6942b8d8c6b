"""
Transform Command Handler.

This module implements the logic for the `enhanced-img transform` command.
It orchestrates:
1. Configuration loading (pyproject.toml plus CLI overrides).
2. Asset pipeline construction.
3. Template rewriting via `ImagePreprocessor`.
4. Output and source map writing.
5. The batch summary.
"""

import asyncio
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from rich.markup import escape
from rich.table import Table

from enhanced_img.config import TransformConfig
from enhanced_img.core.engine import ImagePreprocessor, TransformResult
from enhanced_img.core.errors import PipelineConfigurationError
from enhanced_img.enums import FileStatus
from enhanced_img.pipeline import load_pipeline
from enhanced_img.utils.console import console, log_error, log_info, log_success, log_warning

TEMPLATE_SUFFIX = ".svelte"


class FileOutcome(BaseModel):
  """
  Result of processing one template file.
  """

  status: FileStatus = Field(description="What happened to the file.")
  assets: int = Field(default=0, description="Number of hoisted asset declarations.")
  errors: List[str] = Field(default_factory=list, description="Failure messages.")

  @property
  def failed(self) -> bool:
    return self.status == FileStatus.FAILED


def handle_transform(
  input_path: Path,
  output_path: Optional[Path],
  pipeline: Optional[str],
  assets_root: Optional[Path],
  base_url: Optional[str],
  source_map: bool,
  verbose: bool = False,
) -> int:
  """
  Handles the 'transform' command execution.

  Args:
      input_path: Template file or directory of templates.
      output_path: Destination file or directory. Required for directories.
      pipeline: Override for the pipeline factory (`module:factory`).
      assets_root: Override for the local pipeline root directory.
      base_url: Override for the local pipeline public URL prefix.
      source_map: If True, writes `<dest>.map` next to every transformed output.
      verbose: If True, enables debug logging.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if verbose:
    console.set_level(logging.DEBUG)

  if not input_path.exists():
    log_error(f"Input not found: {escape(str(input_path))}")
    return 1

  try:
    config = TransformConfig.load(
      search_path=input_path if input_path.is_dir() else input_path.parent,
      pipeline=pipeline,
      assets_root=assets_root,
      base_url=base_url,
    )
    asset_pipeline = load_pipeline(config.pipeline, config)
  except (ValueError, PipelineConfigurationError) as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 1

  preprocessor = ImagePreprocessor(asset_pipeline, config=config)
  batch_results: Dict[str, FileOutcome] = {}

  if input_path.is_file():
    outcome = _transform_single_file(preprocessor, input_path, output_path, source_map)
    batch_results[input_path.name] = outcome
    if output_path is None:
      return 1 if outcome.failed else 0

  else:
    if not output_path:
      log_error("Directory transform requires --out destination directory.")
      return 1

    templates = sorted(input_path.rglob(f"*{TEMPLATE_SUFFIX}"))
    if not templates:
      log_warning(f"No {TEMPLATE_SUFFIX} files found in {escape(str(input_path))}")
      return 0

    log_info(f"Processing {len(templates)} files from [path]{escape(str(input_path))}[/path]...")

    for src_file in templates:
      rel_path = src_file.relative_to(input_path)
      batch_results[str(rel_path)] = _transform_single_file(preprocessor, src_file, output_path / rel_path, source_map)

  _print_batch_summary(batch_results)
  return 1 if any(r.failed for r in batch_results.values()) else 0


def _transform_single_file(
  preprocessor: ImagePreprocessor,
  input_path: Path,
  output_path: Optional[Path],
  source_map: bool,
) -> FileOutcome:
  """
  Rewrites one template and writes the result.

  Without an output path the (possibly unchanged) template goes to stdout.

  Args:
      preprocessor: Configured preprocessor.
      input_path: Source template.
      output_path: Destination file, or None for stdout.
      source_map: Whether to write a `.map` file next to the destination.

  Returns:
      FileOutcome: Status of the file.
  """
  try:
    with open(input_path, "rt", encoding="utf-8") as f:
      content = f.read()
    result = asyncio.run(preprocessor.markup(content, filename=str(input_path)))

    if output_path is None:
      if source_map and result:
        log_warning("Source maps are only written together with --out.")
      sys.stdout.write(result.code if result else content)
      return _outcome(result)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if result is None:
      if output_path.resolve() != input_path.resolve():
        shutil.copyfile(input_path, output_path)
      log_info(f"Unchanged: [path]{escape(str(input_path))}[/path]")
      return _outcome(result)

    with open(output_path, "wt", encoding="utf-8") as f:
      f.write(result.code)
    if source_map:
      _write_source_map(result, input_path, output_path)
    log_success(f"Transformed: [path]{escape(str(input_path))}[/path] -> [path]{escape(str(output_path))}[/path]")
    return _outcome(result)
  except Exception as e:
    log_error(f"Failed to transform {escape(str(input_path))}: {escape(str(e))}")
    return FileOutcome(status=FileStatus.FAILED, errors=[str(e)])


def _outcome(result: Optional[TransformResult]) -> FileOutcome:
  if result is None:
    return FileOutcome(status=FileStatus.UNCHANGED)
  return FileOutcome(status=FileStatus.TRANSFORMED, assets=len(result.assets))


def _write_source_map(result: TransformResult, input_path: Path, output_path: Path) -> Path:
  """Writes `<dest>.map` with sources relative to the destination directory."""
  map_path = output_path.with_name(output_path.name + ".map")
  relative_source = os.path.relpath(input_path.resolve(), output_path.parent.resolve())
  source_map = result.map.model_copy(update={"file": output_path.name, "sources": [Path(relative_source).as_posix()]})
  with open(map_path, "wt", encoding="utf-8") as f:
    f.write(source_map.to_json())
  return map_path


def _print_batch_summary(results: Dict[str, FileOutcome]) -> None:
  """
  Renders a summary table of transform results to the console.

  Args:
      results: Dictionary mapping filenames to outcomes.
  """
  total = len(results)
  transformed = sum(1 for r in results.values() if r.status == FileStatus.TRANSFORMED)
  unchanged = sum(1 for r in results.values() if r.status == FileStatus.UNCHANGED)
  failures = sum(1 for r in results.values() if r.failed)

  if failures == 0:
    log_success(f"Batch Complete: {transformed}/{total} files transformed, {unchanged} unchanged.")
    return

  table = Table(title="Transform Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if not res.failed:
      continue
    issues = "; ".join(res.errors) if res.errors else "Unknown Error"
    table.add_row(escape(filename), "❌ Failed", escape(issues))

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {transformed} Transformed, {unchanged} Unchanged, {failures} Failed.")
