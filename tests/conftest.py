"""
Pytest configuration for factor worker tests.

Adds the repository root to the Python path so tests can import
'factor_worker' from a checkout, and provides helpers for fake engines.
"""
import stat
import sys
from pathlib import Path

import pytest

# Add repository root to Python path
repo_dir = Path(__file__).parent.parent
sys.path.insert(0, str(repo_dir))


@pytest.fixture
def make_engine(tmp_path):
    """
    Create an executable shell script standing in for a factoring engine.

    Usage:
        path = make_engine("yafu", 'echo "P3 = 101"')
    """
    def _make(name: str, body: str) -> str:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)
    return _make
