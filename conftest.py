"""
Root conftest.py - Put the repository root on sys.path before collection.

pytest loads this file before any test module is imported, so the flat
`providers` and `services` packages import without an editable install.
"""

import sys
from pathlib import Path

repo_root = Path(__file__).parent
sys.path.insert(0, str(repo_root))
