from __future__ import annotations

import logging
from pathlib import Path

from snapscm.core.manifest import MANIFEST_NAME

log = logging.getLogger("snapscm.repo")

COMMITS_DIR = "commits"
HEAD_FILE = "HEAD"


class RepoState:
    """
    On-disk repository state:

      <root>/HEAD                  current version id (decimal text)
      <root>/commits/<id>/         one directory per sealed snapshot

    Head 0 means the repository holds no snapshots yet.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def commits_dir(self) -> Path:
        return self.root / COMMITS_DIR

    @property
    def head_path(self) -> Path:
        return self.root / HEAD_FILE

    def exists(self) -> bool:
        return self.root.is_dir()

    def ensure_initialized(self) -> bool:
        if self.root.exists():
            return False

        self.root.mkdir(parents=True)
        self.commits_dir.mkdir()
        self.write_head(0)
        log.info("initialized empty repository at %s", self.root)
        return True

    def read_head(self) -> int:
        if not self.head_path.exists():
            return 0

        try:
            text = self.head_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("unreadable HEAD at %s (%s); treating as 0", self.head_path, e)
            return 0

        try:
            value = int(text.strip())
        except ValueError:
            log.warning("malformed HEAD value %r; treating as 0", text)
            return 0

        if value < 0:
            log.warning("negative HEAD value %d; treating as 0", value)
            return 0
        return value

    def write_head(self, version_id: int) -> None:
        tmp = self.head_path.with_suffix(".tmp")
        tmp.write_text(str(version_id), encoding="utf-8")
        tmp.replace(self.head_path)
        log.debug("HEAD -> %d", version_id)

    def snapshot_path(self, version_id: int) -> Path:
        return self.commits_dir / str(version_id)

    def staging_path(self, version_id: int) -> Path:
        return self.commits_dir / f".{version_id}.tmp"

    def retired_path(self, version_id: int) -> Path:
        return self.commits_dir / f".{version_id}.old"

    def manifest_path(self, version_id: int) -> Path:
        return self.snapshot_path(version_id) / MANIFEST_NAME

    def list_versions(self) -> list[int]:
        if not self.commits_dir.is_dir():
            return []
        out: list[int] = []
        for p in self.commits_dir.iterdir():
            if p.is_dir() and p.name.isdigit():
                out.append(int(p.name))
        return sorted(out)
