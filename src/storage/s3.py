"""S3 object store backed by boto3.

Provides a lazily created boto3 client using static credentials, with an
optional region and endpoint URL for S3-compatible services (MinIO, Ceph).
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from ..common.errors import StoreError
from ..common.logger import get_logger
from .base import ObjectStore, ObjectSummary

logger = get_logger("s3_store")


class S3ObjectStore(ObjectStore):
    """Object store using the S3 API.

    Listing goes through the list_objects_v2 paginator so truncated result
    sets are followed to the end. Every botocore failure is wrapped in a
    StoreError naming the operation, bucket and key.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        page_size: int = 1000,
    ):
        """Initialize S3 store.

        Args:
            access_key: AWS access key id
            secret_key: AWS secret access key
            region: Optional region name
            endpoint_url: Optional endpoint for S3-compatible services
            page_size: Maximum keys per listing request
        """
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.endpoint_url = endpoint_url
        self.page_size = page_size
        self._client = None

    def _get_client_kwargs(self) -> Dict[str, Any]:
        """Build kwargs for boto3 client initialization."""
        kwargs: Dict[str, Any] = {
            "aws_access_key_id": self.access_key,
            "aws_secret_access_key": self.secret_key,
        }
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    @property
    def client(self):
        """Get boto3 S3 client (lazy initialization)."""
        if self._client is None:
            self._client = boto3.client("s3", **self._get_client_kwargs())
        return self._client

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[ObjectSummary]:
        """List every object under a prefix, following pagination."""
        paginator = self.client.get_paginator("list_objects_v2")
        params: Dict[str, Any] = {
            "Bucket": bucket,
            "PaginationConfig": {"PageSize": self.page_size},
        }
        if prefix:
            params["Prefix"] = prefix

        try:
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    yield ObjectSummary(
                        key=obj["Key"],
                        last_modified=obj["LastModified"],
                        size=obj.get("Size"),
                    )
        except (ClientError, BotoCoreError) as e:
            raise StoreError("list", bucket, prefix, str(e)) from e

    def get_object(self, bucket: str, key: str, destination: Path) -> Path:
        """Download an object into a local file.

        Writes to a ".part" file first and renames it into place.
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = destination.with_name(destination.name + ".part")

        logger.debug(f"GET s3://{bucket}/{key} -> {destination}")
        try:
            self.client.download_file(bucket, key, str(tmp_path))
            os.replace(tmp_path, destination)
        except (ClientError, BotoCoreError, OSError) as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreError("get", bucket, key, str(e)) from e

        return destination

    def put_object(self, bucket: str, key: str, source: Path) -> None:
        """Upload a local file under a key."""
        logger.debug(f"PUT {source} -> s3://{bucket}/{key}")
        try:
            self.client.upload_file(str(source), bucket, key)
        except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
            raise StoreError("put", bucket, key, str(e)) from e

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete a key."""
        logger.debug(f"DELETE s3://{bucket}/{key}")
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StoreError("delete", bucket, key, str(e)) from e
