from __future__ import annotations


class ScmError(Exception):
    pass


class MalformedManifestError(ScmError):
    pass


class ConfigError(ScmError):
    pass


class IntegrityError(ScmError):
    """
    Stored snapshot content no longer matches what its manifest recorded.
    Never recoverable for the revert in progress.
    """

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"INTEGRITY ERROR: {filename}: {reason}")
