"""
Pytest Configuration

Shared fixtures for building artifact trees with controlled ages.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Callable

import pytest

SECONDS_PER_DAY = 24 * 60 * 60


def _age_folder(folder: Path, age_days: float) -> None:
    stamp = time.time() - age_days * SECONDS_PER_DAY
    os.utime(folder, (stamp, stamp))


@pytest.fixture
def artifacts_root(tmp_path: Path) -> Path:
    root = tmp_path / "artifacts"
    root.mkdir()
    return root


@pytest.fixture
def make_job_dir(artifacts_root: Path) -> Callable[..., Path]:
    """
    Create a job folder under artifacts_root.

    files maps relative paths to sizes in bytes. The folder mtime is set last,
    after all files have been written, so age_days is what the service sees.
    """

    def _make(name: str, age_days: float, files: dict[str, int] | None = None, root: Path | None = None) -> Path:
        folder = (root or artifacts_root) / name
        folder.mkdir()
        for rel_path, size in (files or {}).items():
            target = folder / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"x" * size)
        _age_folder(folder, age_days)
        return folder

    return _make


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_sessionfinish(session, exitstatus):
    # tmp_path cleanup uses a recursive rmtree on Python < 3.12; the deep-tree
    # test leaves ~1100 nested directories behind. Raise the limit only for
    # teardown so tests still run under the default recursion limit.
    import sys

    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(max(previous, 10000))
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)
