# src/snapscm/core/engine.py
from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, TypeVar

from rich.progress import track

from snapscm.core import manifest as manifest_codec
from snapscm.core.errors import IntegrityError, ScmError
from snapscm.core.fs_scanner import ExcludeRules, iter_tracked_files
from snapscm.core.hashing import fingerprint
from snapscm.core.logging_utils import EventLogger, utc_now_iso
from snapscm.core.manifest import MANIFEST_NAME, Snapshot
from snapscm.core.repo_state import RepoState

log = logging.getLogger("snapscm.engine")

T = TypeVar("T")


class RevertStatus(str, Enum):
    REVERTED = "reverted"
    NO_REPOSITORY = "no_repository"
    NOTHING_TO_REVERT = "nothing_to_revert"
    TARGET_NOT_FOUND = "target_not_found"


@dataclass(frozen=True)
class CommitResult:
    version_id: int
    file_count: int
    initialized: bool = False


@dataclass(frozen=True)
class RevertResult:
    status: RevertStatus
    version_id: int
    file_count: int = 0


class SnapshotEngine:
    def __init__(
        self,
        workdir: Path,
        repo: RepoState,
        rules: Optional[ExcludeRules] = None,
        ev: Optional[EventLogger] = None,
        show_progress: bool = False,
    ) -> None:
        self.workdir = Path(workdir)
        self.repo = repo
        # the repository directory itself must never be tracked, whatever it is called
        self.rules = (rules or ExcludeRules()).with_marker(self.repo.root.name)
        self.ev = ev or EventLogger()
        self.show_progress = show_progress

    def _track(self, items: list[T], description: str) -> Iterable[T]:
        if not self.show_progress or not items:
            return items
        return track(items, description=description, transient=True)

    def commit(self) -> CommitResult:
        initialized = self.repo.ensure_initialized()

        head = self.repo.read_head()
        new_id = head + 1

        t0 = time.perf_counter()
        self.ev.event("commit_start", version_id=new_id, workdir=str(self.workdir))
        log.info("committing version %d from %s", new_id, self.workdir)

        # built under a staging name; commits/<id> is only touched once it is complete
        staging = self.repo.staging_path(new_id)
        if staging.exists():
            # left behind by an earlier crashed commit, never sealed
            shutil.rmtree(staging)
        staging.mkdir(parents=True)
        try:
            files: dict[str, str] = {}
            tracked = list(iter_tracked_files(self.workdir, self.rules))
            if any(f.name == MANIFEST_NAME for f in tracked):
                raise ScmError(f"cannot track a working file named {MANIFEST_NAME}; exclude or rename it")

            for f in self._track(tracked, f"Committing version {new_id}..."):
                dest = staging / f.name
                shutil.copy2(f.abs_path, dest)
                # fingerprint the stored copy, not the live file
                sha = fingerprint(dest)
                files[f.name] = sha
                log.debug("captured %s sha256=%s", f.name, sha)
                self.ev.event("file_captured", version_id=new_id, file=f.name, sha256=sha)

            snapshot = Snapshot(version_id=new_id, timestamp=utc_now_iso(), files=files)
            (staging / MANIFEST_NAME).write_bytes(manifest_codec.encode(snapshot))
        except Exception as e:
            log.error("commit of version %d failed: %s", new_id, e)
            self.ev.event("commit_end", version_id=new_id, ok=False, error=str(e))
            shutil.rmtree(staging, ignore_errors=True)
            raise

        self._seal(new_id, staging)

        t1 = time.perf_counter()
        log.info("committed version %d (%d files)", new_id, len(files))
        self.ev.event(
            "commit_end",
            version_id=new_id,
            ok=True,
            file_count=len(files),
            duration_s=round(t1 - t0, 4),
        )
        return CommitResult(version_id=new_id, file_count=len(files), initialized=initialized)

    def _seal(self, version_id: int, staging: Path) -> None:
        """
        Move a finished staging directory to commits/<id> and point HEAD at it.

        After a revert the id may already hold a snapshot from the abandoned
        line of history. It is moved aside first and only deleted once HEAD
        has been written; on failure it is put back.
        """
        snap_dir = self.repo.snapshot_path(version_id)
        retired: Optional[Path] = None
        if snap_dir.exists():
            retired = self.repo.retired_path(version_id)
            if retired.exists():
                shutil.rmtree(retired)
            snap_dir.rename(retired)
            log.info("version %d supersedes an abandoned snapshot with the same id", version_id)

        try:
            staging.rename(snap_dir)
            self.repo.write_head(version_id)
        except Exception:
            if not staging.exists() and snap_dir.exists():
                snap_dir.rename(staging)
            shutil.rmtree(staging, ignore_errors=True)
            if retired is not None:
                retired.rename(snap_dir)
            raise

        if retired is not None:
            shutil.rmtree(retired, ignore_errors=True)

    def revert(self) -> RevertResult:
        if not self.repo.exists():
            log.info("no repository at %s", self.repo.root)
            self.ev.event("revert_skipped", reason=RevertStatus.NO_REPOSITORY.value)
            return RevertResult(status=RevertStatus.NO_REPOSITORY, version_id=0)

        head = self.repo.read_head()
        if head <= 1:
            log.info("nothing to revert (head=%d)", head)
            self.ev.event("revert_skipped", reason=RevertStatus.NOTHING_TO_REVERT.value, head=head)
            return RevertResult(status=RevertStatus.NOTHING_TO_REVERT, version_id=head)

        target = head - 1
        snap_dir = self.repo.snapshot_path(target)
        if not snap_dir.is_dir():
            log.warning("target version %d not found at %s", target, snap_dir)
            self.ev.event("revert_skipped", reason=RevertStatus.TARGET_NOT_FOUND.value, target=target)
            return RevertResult(status=RevertStatus.TARGET_NOT_FOUND, version_id=target)

        t0 = time.perf_counter()
        self.ev.event("revert_start", head=head, target=target)
        log.info("reverting from version %d to %d", head, target)

        snapshot = self.verify(target)
        self.ev.event("integrity_ok", target=target, file_count=len(snapshot.files))

        # destructive phase: only reached once every stored file checked out
        for f in list(iter_tracked_files(self.workdir, self.rules)):
            f.abs_path.unlink()
            log.debug("removed %s", f.name)

        names = sorted(snapshot.files)
        for name in self._track(names, f"Restoring version {target}..."):
            shutil.copy2(snap_dir / name, self.workdir / name)
            self.ev.event("file_restored", target=target, file=name)

        self.repo.write_head(target)

        t1 = time.perf_counter()
        log.info("reverted to version %d (%d files)", target, len(names))
        self.ev.event("revert_end", target=target, file_count=len(names), duration_s=round(t1 - t0, 4))
        return RevertResult(status=RevertStatus.REVERTED, version_id=target, file_count=len(names))

    def verify(self, version_id: int) -> Snapshot:
        """
        Check every file of a stored snapshot against its manifest.
        Raises IntegrityError on the first missing or altered file and
        MalformedManifestError if the manifest cannot be decoded.
        """
        manifest_path = self.repo.manifest_path(version_id)
        if not manifest_path.is_file():
            raise IntegrityError(MANIFEST_NAME, f"manifest missing for version {version_id}")

        snapshot = manifest_codec.decode(manifest_path.read_bytes())
        if snapshot.version_id != version_id:
            raise IntegrityError(
                MANIFEST_NAME,
                f"manifest records version {snapshot.version_id}, stored as {version_id}",
            )

        snap_dir = self.repo.snapshot_path(version_id)
        for name, recorded in sorted(snapshot.files.items()):
            stored = snap_dir / name
            if not stored.is_file():
                raise IntegrityError(name, "backup file missing")
            actual = fingerprint(stored)
            if actual != recorded:
                raise IntegrityError(name, f"backup corrupted (expected {recorded}, got {actual})")

        log.info("integrity check passed for version %d (%d files)", version_id, len(snapshot.files))
        return snapshot
