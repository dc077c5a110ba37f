"""Tests for the repository state store."""

from pathlib import Path

from snapscm.core.repo_state import RepoState


def test_ensure_initialized_creates_layout(repo):
    assert not repo.exists()

    created = repo.ensure_initialized()

    assert created
    assert repo.exists()
    assert repo.commits_dir.is_dir()
    assert repo.head_path.read_text() == "0"
    assert repo.read_head() == 0


def test_ensure_initialized_is_idempotent(repo):
    repo.ensure_initialized()
    before = sorted(p.relative_to(repo.root) for p in repo.root.rglob("*"))

    created = repo.ensure_initialized()

    after = sorted(p.relative_to(repo.root) for p in repo.root.rglob("*"))
    assert not created
    assert before == after
    assert repo.read_head() == 0


def test_read_head_without_repository(repo):
    assert repo.read_head() == 0


def test_write_then_read_head(repo):
    repo.ensure_initialized()

    repo.write_head(42)

    assert repo.read_head() == 42
    assert not (repo.root / "HEAD.tmp").exists()


def test_read_head_tolerates_whitespace(repo):
    repo.ensure_initialized()
    repo.head_path.write_text(" 5\n")

    assert repo.read_head() == 5


def test_malformed_head_is_zero(repo):
    repo.ensure_initialized()

    for bad in ["abc", "", "-3", "1.5", "\x00"]:
        repo.head_path.write_text(bad)
        assert repo.read_head() == 0


def test_snapshot_path_is_pure(tmp_path):
    repo = RepoState(tmp_path / "nowhere" / ".scm")

    p = repo.snapshot_path(12)

    assert p == tmp_path / "nowhere" / ".scm" / "commits" / "12"
    assert repo.manifest_path(12) == p / "manifest.json"
    assert repo.staging_path(12) == p.parent / ".12.tmp"
    assert repo.retired_path(12) == p.parent / ".12.old"
    assert not (tmp_path / "nowhere").exists()


def test_list_versions(repo):
    repo.ensure_initialized()
    for name in ["3", "1", "10", "junk"]:
        (repo.commits_dir / name).mkdir()
    (repo.commits_dir / "7").write_text("not a dir")

    assert repo.list_versions() == [1, 3, 10]


def test_list_versions_uninitialized(tmp_path: Path):
    assert RepoState(tmp_path / ".scm").list_versions() == []
