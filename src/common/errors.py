"""Error types for repository rebuild operations.

Hierarchy::

    RebuildError
    ├── ConfigurationError           - config loading, parsing, validation
    ├── InvalidLocatorError          - repository path does not name a bucket
    ├── StoreError                   - object store call failed
    ├── DownloadError                - object could not be pulled to staging
    ├── RepositoryMissingError       - staged repository has no index
    ├── RepositoryInconsistentError  - index declares a file that is missing
    ├── IndexParseError              - index could not be read
    ├── IndexBuildError              - index builder exited unsuccessfully
    ├── PruneError                   - superseded build could not be removed locally
    ├── UploadError                  - staged file could not be published
    └── DeletionError                - superseded object could not be removed
"""

from typing import Any, Dict, Optional


class RebuildError(Exception):
    """Base exception for all rebuild errors."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RebuildError):
    """Raised when configuration loading or validation fails."""


class InvalidLocatorError(RebuildError):
    """Raised when a repository path cannot be resolved to a bucket."""

    def __init__(self, path: str, reason: str = "no bucket name") -> None:
        self.path = path
        super().__init__(
            f"Invalid repository path '{path}': {reason}",
            details={"path": path, "reason": reason},
        )


class StoreError(RebuildError):
    """Raised when an object store operation fails."""

    def __init__(self, operation: str, bucket: str, key: str = "", reason: str = "") -> None:
        self.operation = operation
        self.bucket = bucket
        self.key = key
        target = f"s3://{bucket}/{key}" if key else f"s3://{bucket}"
        msg = f"{operation} failed for {target}"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg,
            details={"operation": operation, "bucket": bucket, "key": key},
        )


class DownloadError(RebuildError):
    """Raised when an object cannot be downloaded into staging."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        msg = f"Failed to download object from store: {key}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, details={"key": key})


class RepositoryMissingError(RebuildError):
    """Raised when the staged repository has no index."""

    def __init__(self, root: str) -> None:
        self.root = root
        super().__init__(f"Repository does not exist: no index under {root}", details={"root": root})


class RepositoryInconsistentError(RebuildError):
    """Raised when the index declares a file that is absent locally."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Repository metadata declared file {path} but the file does not exist",
            details={"path": path},
        )


class IndexParseError(RebuildError):
    """Raised when the repository index cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed to parse repository index {path}: {reason}", details={"path": path})


class IndexBuildError(RebuildError):
    """Raised when the index builder fails.

    Carries the builder's captured output so it can be surfaced to the user.
    """

    def __init__(
        self,
        command: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        reason: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if reason:
            msg = f"Index build failed ({command}): {reason}"
        else:
            msg = f"Index build failed ({command}) with exit code {returncode}"
        diagnostics = (stderr or stdout).strip()
        if diagnostics:
            msg += f"\n{diagnostics}"
        super().__init__(
            msg,
            details={"command": command, "returncode": returncode},
        )


class UploadError(RebuildError):
    """Raised when a staged file cannot be uploaded."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        msg = f"Failed to upload {key} to store"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, details={"key": key})


class DeletionError(RebuildError):
    """Raised (and collected) when a superseded object cannot be deleted."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        msg = f"Failed to delete {key} from store"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, details={"key": key})


class PruneError(RebuildError):
    """Raised when a superseded build cannot be removed from the staging area."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        msg = f"Failed to remove old snapshot {key} locally"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, details={"key": key})
