"""Pytest configuration shared by unit and integration tests."""
import os
import sys

# Ensure repo root (for tests.helpers) and src/ (for the packages) are importable
# even when the project is not installed.
ROOT = os.path.dirname(os.path.abspath(__file__))
for p in (ROOT, os.path.join(ROOT, "src")):
    if p not in sys.path:
        sys.path.insert(0, p)
