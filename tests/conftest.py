"""Test bootstrap: ensure the package root is on sys.path and share fixtures.

This allows absolute imports like `ai.mook` and `tests.helpers.sandbox`
regardless of the directory pytest is started from.
"""
import os
import sys

PACKAGE_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PACKAGE_ROOT not in sys.path:
    sys.path.insert(0, PACKAGE_ROOT)

import pytest

from tests.helpers.sandbox import duel, fast_settings


@pytest.fixture
def settings():
    """Settings with every animation delay disabled."""
    return fast_settings()


@pytest.fixture
def host():
    """Goblin at (1, 1) next to a friendly fighter at (1, 2)."""
    return duel()
