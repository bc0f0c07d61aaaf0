"""Snapshot-aware rebuild of S3-hosted yum repositories."""

from .context import RebuildContext
from .phases import Phase, PhasePolicy
from .snapshots import SNAPSHOT_MARKER, SnapshotDescription, classify, select_superseded
from .workflow import RebuildResult, RebuildStatus, RebuildWorkflow

__all__ = [
    "Phase",
    "PhasePolicy",
    "RebuildContext",
    "RebuildResult",
    "RebuildStatus",
    "RebuildWorkflow",
    "SNAPSHOT_MARKER",
    "SnapshotDescription",
    "classify",
    "select_superseded",
]
