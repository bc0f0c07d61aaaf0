"""CLI interface for repository rebuilds."""

import argparse
import sys
from typing import List, Optional

import yaml

from ..common.config import RebuildConfig, load_typed_config, validate_config
from ..common.errors import ConfigurationError, RebuildError
from ..common.logger import setup_logger
from .workflow import RebuildWorkflow


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="s3repo-rebuild",
        description="Rebuild an S3-hosted yum repository, optionally removing old snapshots.",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--repository-path", help="s3://bucket[/folder] or /bucket[/folder]")
    parser.add_argument("--staging-dir", help="Local staging directory (cleaned on every run)")
    parser.add_argument("--access-key", help="S3 access key")
    parser.add_argument("--secret-key", help="S3 secret key")
    parser.add_argument("--region", help="S3 region")
    parser.add_argument("--endpoint-url", help="Endpoint for S3-compatible services")
    parser.add_argument(
        "--do-not-validate",
        action="store_true",
        default=None,
        help="Skip validation of the downloaded repository metadata",
    )
    parser.add_argument(
        "--remove-old-snapshots",
        action="store_true",
        default=None,
        help="Delete all but the newest build of each snapshot artifact",
    )
    parser.add_argument(
        "--do-not-upload",
        "--dry-run",
        dest="do_not_upload",
        action="store_true",
        default=None,
        help="Run every step up to, but excluding, the upload to S3",
    )
    parser.add_argument("--createrepo", help="createrepo executable")
    parser.add_argument("--max-workers", type=int, help="Parallel transfers per phase")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    return parser


def apply_args(config: RebuildConfig, args: argparse.Namespace) -> RebuildConfig:
    """Override configuration values with those given on the command line."""
    if args.repository_path:
        config.rebuild.repository_path = args.repository_path
    if args.staging_dir:
        config.rebuild.staging_directory = args.staging_dir
    if args.access_key:
        config.store.access_key = args.access_key
    if args.secret_key:
        config.store.secret_key = args.secret_key
    if args.region:
        config.store.region = args.region
    if args.endpoint_url:
        config.store.endpoint_url = args.endpoint_url
    if args.do_not_validate:
        config.rebuild.validate = False
    if args.remove_old_snapshots:
        config.rebuild.remove_old_snapshots = True
    if args.do_not_upload:
        config.rebuild.upload = False
    if args.createrepo:
        config.rebuild.createrepo = args.createrepo
    if args.max_workers is not None:
        config.rebuild.max_workers = args.max_workers
    if args.log_level:
        config.logging.level = args.log_level
    return config


def main(argv: Optional[List[str]] = None):
    """Main entry point for the rebuild CLI."""
    args = build_parser().parse_args(argv)

    try:
        config = apply_args(load_typed_config(args.config), args)
        validate_config(config)
        logger = setup_logger(
            log_dir=config.logging.log_dir,
            level=config.logging.level,
            file_logging=config.logging.file_logging,
        )
    except (ConfigurationError, FileNotFoundError, TypeError, ValueError, yaml.YAMLError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        result = RebuildWorkflow.from_config(config).run()
    except RebuildError as e:
        logger.error(e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(f"Repository: {result.repository}")
    print(f"Status: {result.status.name.lower()}")
    print(f"Downloaded: {result.objects_downloaded}")
    print(f"Uploaded: {result.objects_uploaded}")
    print(f"Old snapshots: {len(result.superseded_keys)}")
    print(f"Deleted: {result.objects_deleted}")

    if not result.is_success:
        print("Warning: superseded objects left in the store:", file=sys.stderr)
        for key in result.orphaned_keys:
            print(f"  {key}", file=sys.stderr)

    sys.exit(0)


if __name__ == "__main__":
    main()
