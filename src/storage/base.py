"""Base classes for object stores.

Defines the interface the rebuild workflow uses to talk to the bucket
holding the canonical copy of a repository.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional


@dataclass(frozen=True)
class ObjectSummary:
    """Listing entry for one stored object."""

    key: str
    last_modified: datetime
    size: Optional[int] = None

    @property
    def is_folder_placeholder(self) -> bool:
        """Zero-byte "folder" keys created by some S3 consoles."""
        return self.key.endswith("/")


class ObjectStore(ABC):
    """Abstract base class for object stores.

    Each store must implement methods for:
    - Exhaustively listing objects under a key prefix
    - Fetching an object into a local file
    - Storing a local file under a key
    - Deleting a key
    """

    @abstractmethod
    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[ObjectSummary]:
        """List every object under a prefix.

        Implementations must page through truncated listings transparently.

        Args:
            bucket: Bucket name
            prefix: Key prefix ("" for the whole bucket)

        Yields:
            ObjectSummary for each object

        Raises:
            StoreError: If the listing fails
        """
        pass

    @abstractmethod
    def get_object(self, bucket: str, key: str, destination: Path) -> Path:
        """Download an object body into a local file.

        Args:
            bucket: Bucket name
            key: Object key
            destination: Local file to write (parents are created)

        Returns:
            Path to the written file

        Raises:
            StoreError: If the transfer fails
        """
        pass

    @abstractmethod
    def put_object(self, bucket: str, key: str, source: Path) -> None:
        """Upload a local file under a key.

        Raises:
            StoreError: If the transfer fails
        """
        pass

    @abstractmethod
    def delete_object(self, bucket: str, key: str) -> None:
        """Delete a key.

        Raises:
            StoreError: If the deletion fails
        """
        pass
