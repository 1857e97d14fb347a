#!/usr/bin/env python3
"""Run multicopy straight from a checkout: ``scripts/dev-run.py SOURCE DEST...``."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from multicopy.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
