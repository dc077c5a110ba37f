# src/snapscm/core/logging_utils.py
from __future__ import annotations

import json
import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


RUN_LOG_GLOB = "run_*.log"
EVENTS_LOG_GLOB = "events_*.jsonl"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _make_run_id() -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    rnd = secrets.token_hex(3)
    return f"{ts}_{rnd}"


@dataclass
class EventLogger:
    """
    Structured event log (JSONL).
    Each line is one event with timestamp, run_id and extra fields.
    With path=None events are dropped, so callers never need to check.

    Usage:
      ev.event("file_captured", name="a.txt", sha256="...")
    """

    path: Optional[Path] = None
    run_id: str = ""

    def __post_init__(self) -> None:
        self._fh = None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")

    def event(self, name: str, /, **fields: Any) -> None:
        if self._fh is None:
            return
        payload = {
            "ts_utc": utc_now_iso(),
            "run_id": self.run_id,
            "event": name,
            **fields,
        }
        self._fh.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if self._fh is None:
            return
        try:
            self._fh.close()
        except OSError:
            pass
        self._fh = None


def setup_logging(level: int = logging.WARNING, logs_dir: Optional[Path] = None) -> tuple[str, EventLogger]:
    """
    Text logging to stderr, plus files when logs_dir is set:
      logs/run_<run_id>.log
      logs/events_<run_id>.jsonl
    """
    run_id = _make_run_id()

    root = logging.getLogger()
    root.setLevel(level)

    # avoid stacking handlers when invoked repeatedly in one process
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root.addHandler(sh)

    if logs_dir is None:
        return run_id, EventLogger(run_id=run_id)

    logs_dir.mkdir(parents=True, exist_ok=True)
    text_log_path = logs_dir / f"run_{run_id}.log"
    events_path = logs_dir / f"events_{run_id}.jsonl"

    fh = logging.FileHandler(text_log_path, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    ev = EventLogger(path=events_path, run_id=run_id)

    log = logging.getLogger("snapscm")
    log.info("run_id=%s", run_id)
    log.info("text_log=%s", str(text_log_path))
    log.info("events_log=%s", str(events_path))
    log.info("cwd=%s", os.getcwd())
    log.info("pid=%s", os.getpid())

    ev.event(
        "run_boot",
        text_log=str(text_log_path),
        events_log=str(events_path),
        cwd=os.getcwd(),
        pid=os.getpid(),
    )
    return run_id, ev
