"""
Main Entry Point for the enhanced-img CLI.

This module handles argument parsing and dispatches to the command handlers
defined in `enhanced_img.cli.handlers`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from enhanced_img import __version__
from enhanced_img.cli import handlers


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="enhanced-img: Responsive image markup preprocessor")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: TRANSFORM ---
  cmd_tr = subparsers.add_parser("transform", help="Rewrite <enhanced:img> elements in a template file or directory")
  cmd_tr.add_argument("path", type=Path, help="Input .svelte file or directory")
  cmd_tr.add_argument("--out", type=Path, help="Output destination (file or dir)")
  cmd_tr.add_argument(
    "--pipeline",
    default=None,
    help="Asset pipeline factory as 'package.module:factory' (default: from toml, else local files)",
  )
  cmd_tr.add_argument("--assets-root", type=Path, default=None, help="Root directory for /-prefixed references")
  cmd_tr.add_argument("--base-url", default=None, help="Public URL prefix for local assets (default: /)")
  cmd_tr.add_argument("--source-map", action="store_true", help="Write <dest>.map next to each output")
  cmd_tr.add_argument("--verbose", action="store_true", help="Enable debug logging")

  args = parser.parse_args(argv)

  if args.command == "transform":
    return handlers.handle_transform(
      args.path,
      args.out,
      args.pipeline,
      args.assets_root,
      args.base_url,
      args.source_map,
      args.verbose,
    )

  return 0


if __name__ == "__main__":
  sys.exit(main())
