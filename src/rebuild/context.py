"""Per-run state for a repository rebuild."""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..repos.base import LocalRepository
from ..storage.base import ObjectStore
from ..storage.locator import RepositoryLocator
from .snapshots import SnapshotDescription


@dataclass
class RebuildContext:
    """State accumulated by one workflow run.

    The store, locator and local repository are set once during INIT.
    Snapshot groups grow during DOWNLOAD and pending deletions grow during
    PRUNE; both are guarded by a lock so per-object work may run on a
    thread pool. A context belongs to a single run.
    """

    store: Optional[ObjectStore] = None
    locator: Optional[RepositoryLocator] = None
    local_repository: Optional[LocalRepository] = None
    snapshots_by_installable: Dict[str, List[SnapshotDescription]] = field(default_factory=dict)
    pending_deletion_keys: List[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_snapshot(self, description: SnapshotDescription) -> None:
        """Record a snapshot under its installable key, in discovery order."""
        with self._lock:
            self.snapshots_by_installable.setdefault(description.installable_key, []).append(
                description
            )

    def add_pending_deletion(self, key: str) -> None:
        """Record a store key to delete after publishing."""
        with self._lock:
            if key not in self.pending_deletion_keys:
                self.pending_deletion_keys.append(key)

    def snapshot_groups(self) -> Dict[str, List[SnapshotDescription]]:
        """Copy of the snapshot grouping."""
        with self._lock:
            return {key: list(group) for key, group in self.snapshots_by_installable.items()}

    @property
    def bucket(self) -> str:
        if self.locator is None:
            raise RuntimeError("Repository locator has not been resolved")
        return self.locator.bucket
