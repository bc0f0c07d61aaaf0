"""Local repository abstraction for rebuilds.

This module provides the on-disk repository contract used by the rebuild
workflow, and its createrepo-backed yum implementation.
"""

from .base import LocalRepository
from .createrepo import CreaterepoRepository

__all__ = [
    "LocalRepository",
    "CreaterepoRepository",
]
