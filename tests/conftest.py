from __future__ import annotations

import logging
from pathlib import Path

import pytest

from snapscm.core.engine import SnapshotEngine
from snapscm.core.repo_state import RepoState


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """The CLI replaces root handlers; put pytest's back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    wd = tmp_path / "work"
    wd.mkdir()
    return wd


@pytest.fixture
def repo(workdir: Path) -> RepoState:
    return RepoState(workdir / ".scm")


@pytest.fixture
def engine(workdir: Path, repo: RepoState) -> SnapshotEngine:
    return SnapshotEngine(workdir=workdir, repo=repo)
