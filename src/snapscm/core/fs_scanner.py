from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Iterable

import pathspec


DEFAULT_CONTAINS = (".scm", ".git", "target", "Cargo")
DEFAULT_SUFFIXES = ("scm", ".rs")


@dataclass(frozen=True)
class ExcludeRules:
    contains: tuple[str, ...] = DEFAULT_CONTAINS
    suffixes: tuple[str, ...] = DEFAULT_SUFFIXES
    ignore_patterns: tuple[str, ...] = field(default_factory=tuple)

    def with_marker(self, marker: str) -> ExcludeRules:
        if not marker or marker in self.contains:
            return self
        return replace(self, contains=self.contains + (marker,))

    def with_patterns(self, *patterns: str) -> ExcludeRules:
        extra = tuple(p for p in patterns if p not in self.ignore_patterns)
        if not extra:
            return self
        return replace(self, ignore_patterns=self.ignore_patterns + extra)


@dataclass(frozen=True)
class TrackedFile:
    abs_path: Path
    name: str


@lru_cache(maxsize=32)
def _build_ignore_spec(patterns: tuple[str, ...]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def is_excluded(rel_path: Path | str, rules: ExcludeRules) -> bool:
    # Plain substring match on the whole relative path, so e.g. "my_target.txt"
    # is excluded too. Commit and revert must both go through here.
    s = Path(rel_path).as_posix()

    if any(marker in s for marker in rules.contains):
        return True

    if any(s.endswith(suffix) for suffix in rules.suffixes):
        return True

    if rules.ignore_patterns and _build_ignore_spec(rules.ignore_patterns).match_file(s):
        return True

    return False


def iter_tracked_files(workdir: Path, rules: ExcludeRules) -> Iterable[TrackedFile]:
    for p in sorted(workdir.iterdir(), key=lambda x: x.name):
        if is_excluded(p.name, rules):
            continue

        # flat: subdirectories are never descended
        if p.is_file():
            yield TrackedFile(abs_path=p, name=p.name)
