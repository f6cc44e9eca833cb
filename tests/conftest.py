from __future__ import annotations

import sys
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
SRC_DIR = TESTS_DIR.parent / "src"

for path in (SRC_DIR, TESTS_DIR):
    sys.path.insert(0, str(path))
