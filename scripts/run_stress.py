#!/usr/bin/env python3
"""Run a stress workload from a source checkout."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlstress.cli import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
