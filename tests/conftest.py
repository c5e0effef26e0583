#!/usr/bin/env python3

import tempfile
from pathlib import Path

import clang.cindex as clang
import pytest


@pytest.fixture
def temp_project():
    """Create a temporary source tree for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        project_root = Path(temp_dir)
        (project_root / "src").mkdir()
        (project_root / "include").mkdir()
        yield project_root


@pytest.fixture
def parse():
    """Parse a file with libclang and fail on error diagnostics."""
    index = clang.Index.create()

    def _parse(path: Path, args: list[str] | None = None) -> clang.TranslationUnit:
        tu = index.parse(str(path), args=args or [])
        errors = [d.spelling for d in tu.diagnostics if d.severity >= clang.Diagnostic.Error]
        assert not errors, f"Unexpected errors parsing {path}: {errors}"
        return tu

    return _parse
