# tests/conftest.py
#
# Project-wide fixtures for pytest. The project root goes on sys.path so the
# 'plainterm' package and main.py import without an install.

import sys
import os

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


@pytest.fixture
def completion_dir(tmp_path):
    """A directory holding main.go, main.py, module.go and a 'src' folder."""
    for name in ("main.go", "main.py", "module.go"):
        (tmp_path / name).write_text("")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "util.py").write_text("")
    return tmp_path
