#!/usr/bin/env python3
"""
Upload build artifacts to Google Cloud Storage.

CLI wrapper around the upload engine. Settings come from the environment
(``PLUGIN_*`` variables, optionally loaded from an env file), an optional
YAML deploy file, and flags, in increasing order of precedence.

Usage:
    python scripts/upload.py --bucket my-assets --source "build/**"
    python scripts/upload.py --source "dist/**" --target releases/v1 --strip-prefix dist/
    python scripts/upload.py --config deploy.yaml --dry-run
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from gcs_deploy import __version__  # noqa: E402
from gcs_deploy.uploader import RunReport, run_upload  # noqa: E402
from gcs_deploy.utils.config import DeployConfig  # noqa: E402
from gcs_deploy.utils.config_loader import load_overrides  # noqa: E402
from gcs_deploy.utils.errors import DeployError  # noqa: E402
from gcs_deploy.utils.logging import get_logger, setup_logging  # noqa: E402
from gcs_deploy.utils.metrics import get_metrics  # noqa: E402

logger = get_logger(__name__)


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Upload build artifacts to Google Cloud Storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload everything under build/ to the bucket root
  %(prog)s --bucket my-assets --source "build/**" --strip-prefix build/

  # Versioned release without source maps, gzip-compressed and public
  %(prog)s --bucket my-assets --source "build/**" --exclude "build/**/*.map" \\
      --target releases/v1 --strip-prefix build/ --compress --acl public

  # Preview what a deploy file would upload
  %(prog)s --config deploy.yaml --dry-run
        """,
    )

    parser.add_argument(
        "--application-credentials",
        help="Service account JSON contents "
        "(env: GOOGLE_APPLICATION_CREDENTIALS_CONTENTS)",
    )
    parser.add_argument("--bucket", help="GCS bucket (env: PLUGIN_BUCKET, GCS_BUCKET)")
    parser.add_argument(
        "--acl",
        choices=["private", "public"],
        help="Upload files with this access mode (default: private)",
    )
    parser.add_argument("--source", help="Glob pattern of files to upload (env: PLUGIN_SOURCE)")
    parser.add_argument("--target", help="Target folder in the bucket (env: PLUGIN_TARGET)")
    parser.add_argument(
        "--strip-prefix",
        help="Strip this prefix from local paths (env: PLUGIN_STRIP_PREFIX)",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        help="Ignore files matching this pattern (can specify multiple times)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log what would be uploaded without uploading",
    )
    parser.add_argument(
        "--compress",
        action="store_true",
        default=None,
        help="Gzip files before they are uploaded",
    )
    parser.add_argument("--cache-control", help="Cache-Control metadata for uploaded files")
    parser.add_argument("--env-file", help="Load environment variables from this file")
    parser.add_argument("-c", "--config", help="YAML deploy file")
    parser.add_argument(
        "--metrics-file",
        help="Write Prometheus metrics to this file when the run ends",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def flag_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed flags onto DeployConfig attribute names (unset flags are None)."""
    return {
        "credentials": args.application_credentials,
        "bucket": args.bucket,
        "access": args.acl,
        "source": args.source,
        "target": args.target,
        "strip_prefix": args.strip_prefix,
        "exclude": args.exclude,
        "dry_run": args.dry_run,
        "compress": args.compress,
        "cache_control": args.cache_control,
    }


def print_summary(report: RunReport) -> None:
    """Print a human-readable summary of a finished run."""
    verb = "Would upload" if report.dry_run else "Uploaded"
    print(f"\n📊 Upload Summary ({report.bucket}):")
    print(f"  Matched: {report.matched}")
    print(f"  Skipped: {report.skipped}")
    print(f"  ✅ {verb}: {report.uploaded}")
    if not report.dry_run:
        print(f"  📦 Total size: {report.bytes_uploaded:,} bytes")
    for result in report.results:
        print(f"  • {result.local_path} -> {result.gcs_uri}")


def main(argv: Optional[list] = None) -> int:
    """Main entry point for upload CLI."""
    args = parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else None)

    metrics = get_metrics()
    try:
        config = DeployConfig.from_env(args.env_file)
        if args.config:
            config = config.merge(load_overrides(args.config))
        config = config.merge(flag_overrides(args))
        spec = config.to_upload_spec()

        report = run_upload(spec, metrics=metrics)
        print_summary(report)
        return 0

    except DeployError as e:
        logger.error(f"Deploy failed: {e}")
        print(f"❌ Deploy failed: {e}")
        return 1

    except KeyboardInterrupt:
        print("\n⚠️  Upload cancelled by user")
        return 130

    finally:
        if args.metrics_file:
            metrics.write_textfile(args.metrics_file)


if __name__ == "__main__":
    sys.exit(main())
