"""Object store access for repository rebuilds.

Provides the store contract consumed by the rebuild workflow, the
boto3-backed S3 implementation and repository path parsing.
"""

from .base import ObjectStore, ObjectSummary
from .locator import RepositoryLocator
from .s3 import S3ObjectStore

__all__ = [
    "ObjectStore",
    "ObjectSummary",
    "RepositoryLocator",
    "S3ObjectStore",
]
