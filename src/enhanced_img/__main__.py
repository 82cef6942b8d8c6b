"""
Entry point for module execution (``python -m enhanced_img``).

This module delegates execution to the CLI handler in ``enhanced_img.cli.__main__``.
"""

import sys
from enhanced_img.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
