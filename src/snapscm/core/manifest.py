from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from snapscm.core.errors import MalformedManifestError

MANIFEST_NAME = "manifest.json"


@dataclass(frozen=True)
class Snapshot:
    version_id: int
    timestamp: str
    files: dict[str, str] = field(default_factory=dict)


def is_valid_filename(name: str) -> bool:
    if not name or name in {".", "..", MANIFEST_NAME}:
        return False
    return "/" not in name and "\\" not in name


def encode(snapshot: Snapshot) -> bytes:
    data: dict[str, Any] = {
        "version_id": snapshot.version_id,
        "timestamp": snapshot.timestamp,
        "files": {k: snapshot.files[k] for k in sorted(snapshot.files)},
    }
    return (json.dumps(data, ensure_ascii=False, indent=2) + "\n").encode("utf-8")


def decode(data: bytes) -> Snapshot:
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedManifestError(f"manifest is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedManifestError("manifest must be a JSON object")

    if "version_id" not in raw:
        raise MalformedManifestError("manifest missing 'version_id'")
    version_id = raw["version_id"]
    # bool is an int subclass; reject it explicitly
    if isinstance(version_id, bool) or not isinstance(version_id, int) or version_id < 1:
        raise MalformedManifestError(f"invalid version_id: {version_id!r}")

    timestamp = raw.get("timestamp", "")
    if not isinstance(timestamp, str):
        raise MalformedManifestError(f"invalid timestamp: {timestamp!r}")

    if "files" not in raw:
        raise MalformedManifestError("manifest missing 'files'")
    files = raw["files"]
    if not isinstance(files, dict):
        raise MalformedManifestError("'files' must be an object")

    for name, fp in files.items():
        if not isinstance(fp, str):
            raise MalformedManifestError(f"fingerprint for {name!r} must be a string")
        if not is_valid_filename(name):
            raise MalformedManifestError(f"invalid filename in manifest: {name!r}")

    return Snapshot(version_id=version_id, timestamp=timestamp, files=dict(files))
