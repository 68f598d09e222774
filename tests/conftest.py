"""Pytest bootstrap for local source imports.

Puts the repository root on ``sys.path`` so ``import repo2txt`` resolves to
the working tree, and resets the git matcher cache between tests so a
recycled temp directory never sees a stale matcher.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True)
def _fresh_gitignore_cache():
    from repo2txt.gitignore import clear_gitignore_cache

    clear_gitignore_cache()
    yield
    clear_gitignore_cache()
