"""Centralized path resolution for frozen and development modes."""

import sys
from pathlib import Path

if getattr(sys, "frozen", False):
    BASE_DIR = Path(sys.executable).parent
else:
    BASE_DIR = Path(__file__).resolve().parent.parent

CACHE_DIR = BASE_DIR / "cache"
OUTPUT_DIR = BASE_DIR / "output"
MOCK_DATA_DIR = BASE_DIR / "mock_data"
DB_PATH = OUTPUT_DIR / "squad.db"
