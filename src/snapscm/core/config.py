from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from snapscm.core.errors import ConfigError
from snapscm.core.fs_scanner import DEFAULT_CONTAINS, DEFAULT_SUFFIXES, ExcludeRules
from snapscm.core.logging_utils import EVENTS_LOG_GLOB, RUN_LOG_GLOB


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        def repl(m: re.Match[str]) -> str:
            return os.environ.get(m.group(1), "")
        return _ENV_PATTERN.sub(repl, value)

    if isinstance(value, list):
        return [_expand_env(v) for v in value]

    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}

    return value


@dataclass(frozen=True)
class PathsCfg:
    workdir: Path
    repo_dir_rel: str
    logs_dir_rel: str

    @property
    def repo_root(self) -> Path:
        return self.workdir / self.repo_dir_rel

    @property
    def logs_dir(self) -> Optional[Path]:
        if not self.logs_dir_rel:
            return None
        return self.workdir / self.logs_dir_rel


@dataclass(frozen=True)
class LoggingCfg:
    level: int


@dataclass(frozen=True)
class UiCfg:
    progress: bool


@dataclass(frozen=True)
class AppCfg:
    paths: PathsCfg
    exclude: ExcludeRules
    logging: LoggingCfg
    ui: UiCfg

    def with_workdir(self, workdir: Path) -> AppCfg:
        paths = PathsCfg(
            workdir=Path(workdir),
            repo_dir_rel=self.paths.repo_dir_rel,
            logs_dir_rel=self.paths.logs_dir_rel,
        )
        return AppCfg(paths=paths, exclude=self.exclude, logging=self.logging, ui=self.ui)

    def tracking_rules(self) -> ExcludeRules:
        """Exclusion rules plus the configured log location."""
        logs_dir = self.paths.logs_dir
        if logs_dir is None:
            return self.exclude

        try:
            rel = logs_dir.resolve().relative_to(self.paths.workdir.resolve())
        except ValueError:
            return self.exclude

        if rel.parts:
            return self.exclude.with_marker(rel.parts[0])
        return self.exclude.with_patterns(RUN_LOG_GLOB, EVENTS_LOG_GLOB)


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"config section '{name}' must be a mapping")
    return value


def _str_list(value: Any, key: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def _level(value: Any) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ConfigError(f"unknown logging level: {value!r}")
    return level


def load_config(config_path: Optional[Path] = None) -> AppCfg:
    raw: Any = {}
    if config_path is not None:
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")
    raw = _expand_env(raw)

    p = _section(raw, "paths")
    paths = PathsCfg(
        workdir=Path(p.get("workdir", ".")),
        repo_dir_rel=str(p.get("repo_dir", ".scm")),
        logs_dir_rel=str(p.get("logs_dir", "") or ""),
    )

    e = _section(raw, "exclude")
    exclude = ExcludeRules(
        contains=_str_list(e.get("contains", list(DEFAULT_CONTAINS)), "exclude.contains"),
        suffixes=_str_list(e.get("suffixes", list(DEFAULT_SUFFIXES)), "exclude.suffixes"),
        ignore_patterns=_str_list(e.get("ignore_patterns", []), "exclude.ignore_patterns"),
    )

    lg = _section(raw, "logging")
    log_cfg = LoggingCfg(level=_level(lg.get("level", "WARNING")))

    u = _section(raw, "ui")
    ui = UiCfg(progress=bool(u.get("progress", True)))

    return AppCfg(paths=paths, exclude=exclude, logging=log_cfg, ui=ui)
