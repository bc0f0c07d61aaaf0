"""Snapshot-aware rebuild of a repository stored in S3.

The workflow mirrors the bucket (or bucket folder) into a clean staging
directory, optionally validates the downloaded index, optionally prunes
superseded snapshot builds, regenerates the index, uploads the staging tree
and only then deletes the superseded objects from the store.

Object stores have no multi-object transactions, so ordering is what keeps
concurrent repository clients safe: nothing is deleted remotely until every
upload of the new index and files has completed. A failure at or before the
REBUILD phase leaves the store untouched.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from ..common.config import RebuildConfig
from ..common.errors import (
    DeletionError,
    DownloadError,
    PruneError,
    RepositoryInconsistentError,
    RepositoryMissingError,
    StoreError,
    UploadError,
)
from ..common.logger import get_logger
from ..repos.base import LocalRepository
from ..repos.createrepo import CreaterepoRepository
from ..storage.base import ObjectStore, ObjectSummary
from ..storage.locator import RepositoryLocator
from ..storage.s3 import S3ObjectStore
from .context import RebuildContext
from .phases import Phase, PhasePolicy
from .snapshots import SNAPSHOT_MARKER, describe, select_superseded
from .staging import (
    create_or_clean_directory,
    list_all_files,
    relativize,
    staging_path,
    to_store_key,
)

logger = get_logger("rebuild")

RepositoryFactory = Callable[[Path], LocalRepository]


class RebuildStatus(Enum):
    """Outcome of a rebuild run."""

    SUCCESS = auto()
    PARTIAL = auto()  # Published, but some superseded objects were not deleted
    DRY_RUN = auto()  # Stopped before publishing


@dataclass
class RebuildResult:
    """Result of a rebuild run."""

    status: RebuildStatus
    repository: str
    objects_downloaded: int = 0
    objects_uploaded: int = 0
    objects_deleted: int = 0
    superseded_keys: List[str] = field(default_factory=list)
    failed_deletions: List[DeletionError] = field(default_factory=list)
    completed_phases: List[Phase] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if the store holds no superseded objects left behind by the run."""
        return self.status != RebuildStatus.PARTIAL

    @property
    def orphaned_keys(self) -> List[str]:
        """Superseded keys left in the store by failed deletions."""
        return [e.key for e in self.failed_deletions]


class RebuildWorkflow:
    """Orchestrates a repository rebuild.

    Phases run in a fixed order (see Phase); the PhasePolicy decides which
    optional ones run. Any error raised by a phase aborts the run before
    later phases start. Deletion failures during CLEANUP are collected on
    the result instead.
    """

    def __init__(
        self,
        store: ObjectStore,
        repository_path: str,
        staging_directory: Path,
        policy: Optional[PhasePolicy] = None,
        repository_factory: RepositoryFactory = CreaterepoRepository,
        snapshot_marker: str = SNAPSHOT_MARKER,
        max_workers: int = 1,
    ):
        """Initialize workflow.

        Args:
            store: Object store holding the canonical repository
            repository_path: "s3://bucket[/folder]" or "/bucket[/folder]"
            staging_directory: Local working directory (cleaned on every run)
            policy: Enabled phases (validate and publish by default)
            repository_factory: Builds the local repository for a root directory
            snapshot_marker: Filename token identifying snapshot builds
            max_workers: Thread pool size for per-object transfers
        """
        self.store = store
        self.repository_path = repository_path
        self.staging_directory = Path(staging_directory)
        self.policy = policy or PhasePolicy.create()
        self.repository_factory = repository_factory
        self.snapshot_marker = snapshot_marker
        self.max_workers = max(1, max_workers)

        self._handlers: Dict[Phase, Callable[[RebuildContext, RebuildResult], None]] = {
            Phase.INIT: self._initialize,
            Phase.DOWNLOAD: self._download,
            Phase.VALIDATE: self._validate,
            Phase.PRUNE: self._prune,
            Phase.REBUILD: self._rebuild,
            Phase.PUBLISH: self._publish,
            Phase.CLEANUP: self._cleanup,
        }

    @classmethod
    def from_config(cls, config: RebuildConfig) -> "RebuildWorkflow":
        """Build a workflow backed by S3 and createrepo."""
        options = config.rebuild
        store = S3ObjectStore(
            access_key=config.store.access_key,
            secret_key=config.store.secret_key,
            region=config.store.region,
            endpoint_url=config.store.endpoint_url,
        )
        factory = partial(
            CreaterepoRepository,
            createrepo=options.createrepo,
            extra_args=options.createrepo_args,
            timeout=options.createrepo_timeout,
        )
        return cls(
            store=store,
            repository_path=options.repository_path,
            staging_directory=Path(options.staging_directory),
            policy=PhasePolicy.from_options(options),
            repository_factory=factory,
            snapshot_marker=options.snapshot_marker,
            max_workers=options.max_workers,
        )

    def run(self) -> RebuildResult:
        """Run every enabled phase in order.

        Returns:
            RebuildResult describing the run

        Raises:
            RebuildError: If any phase fails (deletion failures excepted)
        """
        start_time = datetime.now()
        context = RebuildContext()
        result = RebuildResult(status=RebuildStatus.SUCCESS, repository=self.repository_path)

        for phase in self.policy.plan():
            logger.debug(f"Entering phase {phase.name}")
            self._handlers[phase](context, result)
            result.completed_phases.append(phase)

        if self.policy.is_dry_run:
            logger.info("Per configuration, not uploading built repository to S3.")
            result.status = RebuildStatus.DRY_RUN
        elif result.failed_deletions:
            result.status = RebuildStatus.PARTIAL

        result.duration_seconds = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Rebuild of {context.locator} finished: {result.status.name.lower()}, "
            f"{result.objects_downloaded} downloaded, {result.objects_uploaded} uploaded, "
            f"{result.objects_deleted} deleted"
        )
        return result

    def _initialize(self, context: RebuildContext, result: RebuildResult) -> None:
        locator = RepositoryLocator.parse(self.repository_path)
        if locator.has_sub_folder:
            logger.info(
                f"Using bucket '{locator.bucket}' and folder '{locator.sub_folder}' as repository..."
            )
        else:
            logger.info(f"Using bucket '{locator.bucket}' as repository...")

        context.store = self.store
        context.locator = locator

        repository_root = self.staging_directory
        if locator.has_sub_folder:
            repository_root = self.staging_directory / locator.sub_folder
        context.local_repository = self.repository_factory(repository_root)

        # The whole staging area is cleaned, not just the repository folder
        create_or_clean_directory(self.staging_directory)

    def _download(self, context: RebuildContext, result: RebuildResult) -> None:
        logger.info("Downloading entire repository...")
        bucket = context.bucket
        prefix = context.locator.key_prefix

        summaries = []
        try:
            for summary in context.store.list_objects(bucket, prefix):
                if summary.is_folder_placeholder:
                    continue
                if summary.key.startswith("/"):
                    logger.warning(f"Skipping '{summary.key}': keys must not start with '/'")
                    continue
                summaries.append(summary)
        except StoreError as e:
            raise DownloadError(prefix or "/", e.message) from e

        logger.debug(
            f"Found {len(summaries)} objects in bucket '{bucket}' with prefix '{prefix}'..."
        )

        # Classified in listing order so each group keeps discovery order
        for summary in summaries:
            description = describe(summary, self.snapshot_marker)
            if description is not None:
                logger.debug(
                    f"Making note of snapshot '{summary.key}'; "
                    f"using prefix = {description.installable_key}"
                )
                context.add_snapshot(description)

        self._for_each(partial(self._download_object, context), summaries)
        result.objects_downloaded = len(summaries)

    def _download_object(self, context: RebuildContext, summary: ObjectSummary) -> None:
        logger.info(f"Downloading {summary.key} from S3...")
        try:
            target = staging_path(self.staging_directory, summary.key)
        except ValueError as e:
            raise DownloadError(summary.key, str(e)) from e

        try:
            context.store.get_object(context.bucket, summary.key, target)
        except StoreError as e:
            raise DownloadError(summary.key, e.message) from e

    def _validate(self, context: RebuildContext, result: RebuildResult) -> None:
        logger.info("Validating downloaded repository...")
        repository = context.local_repository
        if not repository.index_exists():
            raise RepositoryMissingError(str(repository.root))

        for declared in repository.list_declared_files():
            if not repository.file_exists(declared):
                raise RepositoryInconsistentError(declared)

    def _prune(self, context: RebuildContext, result: RebuildResult) -> None:
        logger.info("Removing old snapshots...")
        repository = context.local_repository
        prefix = context.locator.key_prefix

        for installable_key, group in context.snapshot_groups().items():
            for superseded in select_superseded(group):
                logger.info(f"Deleting old snapshot '{superseded.object_key}', locally...")
                relative_path = _strip_prefix(superseded.object_key, prefix)
                try:
                    repository.delete_file(relative_path)
                except FileNotFoundError:
                    logger.warning(f"Old snapshot '{relative_path}' already absent locally")
                except (OSError, ValueError) as e:
                    raise PruneError(superseded.object_key, str(e)) from e
                # Removed from the store only after the new index is published
                context.add_pending_deletion(superseded.object_key)

        result.superseded_keys = list(context.pending_deletion_keys)

    def _rebuild(self, context: RebuildContext, result: RebuildResult) -> None:
        logger.info("Rebuilding repo...")
        context.local_repository.rebuild_index()

    def _publish(self, context: RebuildContext, result: RebuildResult) -> None:
        files = list_all_files(self.staging_directory)
        logger.info(f"Uploading {len(files)} files to s3://{context.bucket}...")

        # _for_each joins every upload before returning
        self._for_each(partial(self._upload_file, context), files)
        result.objects_uploaded = len(files)

    def _upload_file(self, context: RebuildContext, path: Path) -> None:
        key = to_store_key(relativize(self.staging_directory, path))
        logger.info(f"Uploading {path.name} to s3://{context.bucket}/{key}...")
        try:
            context.store.put_object(context.bucket, key, path)
        except StoreError as e:
            raise UploadError(key, e.message) from e

    def _cleanup(self, context: RebuildContext, result: RebuildResult) -> None:
        for key in context.pending_deletion_keys:
            logger.info(f"Deleting old snapshot '{key}' from S3...")
            try:
                context.store.delete_object(context.bucket, key)
            except StoreError as e:
                error = DeletionError(key, e.message)
                logger.error(error.message)
                result.failed_deletions.append(error)
            else:
                result.objects_deleted += 1

        if result.failed_deletions:
            logger.warning(
                f"{len(result.failed_deletions)} superseded objects could not be deleted "
                f"and remain in the store"
            )

    def _for_each(self, func: Callable, items: Iterable) -> None:
        """Apply func to every item, on a thread pool when configured.

        Returns only after every submitted call has finished. The first
        failure cancels calls that have not started and is re-raised.
        """
        items = list(items)
        if self.max_workers <= 1 or len(items) <= 1:
            for item in items:
                func(item)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(func, item) for item in items]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise


def _strip_prefix(key: str, prefix: str) -> str:
    if prefix and key.startswith(prefix):
        return key[len(prefix):]
    return key
