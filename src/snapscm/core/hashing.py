from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO, Union

_BLOCK_SIZE = 64 * 1024

Source = Union[str, Path, BinaryIO]


def fingerprint_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _digest_stream(fh: BinaryIO) -> str:
    h = hashlib.sha256()
    while True:
        block = fh.read(_BLOCK_SIZE)
        if not block:
            break
        h.update(block)
    return h.hexdigest()


def fingerprint(source: Source) -> str:
    # OSError from open/read is left to the caller: it aborts the whole operation.
    if hasattr(source, "read"):
        return _digest_stream(source)  # type: ignore[arg-type]
    with Path(source).open("rb") as fh:
        return _digest_stream(fh)
