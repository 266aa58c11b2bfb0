"""Project-wide pytest configuration: make the flat packages importable."""

from __future__ import annotations

import os
import sys

PACKAGE_ROOT = os.path.abspath(os.path.dirname(__file__))
if PACKAGE_ROOT not in sys.path:
    sys.path.insert(0, PACKAGE_ROOT)
