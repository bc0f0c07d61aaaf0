"""Snapshot artifact classification.

A snapshot artifact is a build output whose filename embeds a marker token
(Maven's "SNAPSHOT" by default). All snapshot builds of one logical package
share an installable key: the object's directory path plus the filename
prefix in front of the marker. Version numbers are not parsed; grouping is
purely by literal prefix.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from ..common.config import DEFAULT_SNAPSHOT_MARKER
from ..storage.base import ObjectSummary

SNAPSHOT_MARKER = DEFAULT_SNAPSHOT_MARKER


@dataclass(frozen=True)
class SnapshotDescription:
    """One discovered snapshot artifact."""

    installable_key: str
    object_key: str
    last_modified: datetime


def split_key(object_key: str):
    """Split a key into (directory path with trailing "/", file name).

    A separator at index 0 is not treated as a directory boundary.
    """
    last_slash = object_key.rfind("/")
    if last_slash > 0:
        return object_key[: last_slash + 1], object_key[last_slash + 1:]
    return "", object_key


def classify(object_key: str, marker: str = SNAPSHOT_MARKER) -> Optional[str]:
    """Compute the installable key of a snapshot artifact.

    Args:
        object_key: Full store key
        marker: Snapshot marker token

    Returns:
        Installable key, or None if the key is not a snapshot artifact.
        A marker at the very start of the file name does not count.
    """
    path, file_name = split_key(object_key)
    marker_index = file_name.find(marker)
    if marker_index > 0:
        return path + file_name[:marker_index]
    return None


def describe(summary: ObjectSummary, marker: str = SNAPSHOT_MARKER) -> Optional[SnapshotDescription]:
    """Build a SnapshotDescription for a listed object, if it is a snapshot."""
    installable_key = classify(summary.key, marker)
    if installable_key is None:
        return None
    return SnapshotDescription(
        installable_key=installable_key,
        object_key=summary.key,
        last_modified=summary.last_modified,
    )


def select_superseded(group: Sequence[SnapshotDescription]) -> List[SnapshotDescription]:
    """Return every snapshot in a group except the most recent one.

    Newest first by last_modified; ties keep discovery order, so the first
    discovered of several equally new snapshots is the one retained.
    """
    if len(group) < 2:
        return []
    newest_first = sorted(group, key=lambda s: s.last_modified, reverse=True)
    return newest_first[1:]
