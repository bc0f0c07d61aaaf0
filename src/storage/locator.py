"""Repository path parsing.

A repository path names a bucket and, optionally, a folder inside it.
Both of these forms are accepted:

    s3://bucket/folder/sub
    /bucket/folder/sub
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..common.errors import InvalidLocatorError

SCHEME = "s3://"

_BUCKET_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@dataclass(frozen=True)
class RepositoryLocator:
    """Bucket plus optional bucket-relative folder of a repository."""

    bucket: str
    sub_folder: Optional[str] = None

    @classmethod
    def parse(cls, path: str) -> "RepositoryLocator":
        """Parse a repository path.

        Args:
            path: "s3://bucket[/folder]" or "/bucket[/folder]"

        Returns:
            RepositoryLocator

        Raises:
            InvalidLocatorError: If no bucket name can be resolved, or the folder
                has an empty, "." or ".." segment
        """
        if path is None:
            raise InvalidLocatorError("", "path is empty")
        raw = path.strip()
        if raw.startswith(SCHEME):
            remainder = raw[len(SCHEME):]
        elif raw.startswith("/"):
            remainder = raw.lstrip("/")
        else:
            raise InvalidLocatorError(path, f"must start with '{SCHEME}' or '/'")

        bucket, _, folder = remainder.partition("/")
        if not bucket:
            raise InvalidLocatorError(path)
        if not _BUCKET_RE.match(bucket):
            raise InvalidLocatorError(path, f"illegal bucket name '{bucket}'")

        folder = folder.strip("/")
        if folder and any(part in ("", ".", "..") for part in folder.split("/")):
            raise InvalidLocatorError(path, f"illegal folder '{folder}'")
        return cls(bucket=bucket, sub_folder=folder or None)

    @property
    def has_sub_folder(self) -> bool:
        return self.sub_folder is not None

    @property
    def key_prefix(self) -> str:
        """Listing prefix for the repository ("" for a whole bucket)."""
        return f"{self.sub_folder}/" if self.sub_folder else ""

    def __str__(self) -> str:
        if self.sub_folder:
            return f"{SCHEME}{self.bucket}/{self.sub_folder}"
        return f"{SCHEME}{self.bucket}"
