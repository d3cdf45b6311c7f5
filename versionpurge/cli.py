"""CLI for purging every object version and delete marker from a bucket."""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path
from typing import Any, Optional, Sequence, TextIO

from botocore.exceptions import BotoCoreError
from loguru import logger

from versionpurge.cancellation import Deadline
from versionpurge.exceptions import ConfigurationError, UsageError
from versionpurge.logging_config import setup_logging
from versionpurge.metrics import PurgeMetrics
from versionpurge.observer import CompositeObserver, LoggingObserver
from versionpurge.orchestrator import purge_bucket
from versionpurge.settings import PurgeSettings
from versionpurge.storage.s3 import create_s3_client

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse a Go-style duration ("90s", "-1s", "1h30m", "250ms") or bare seconds."""
    value = text.strip()
    if not value:
        raise UsageError("Empty duration")
    try:
        return float(value)
    except ValueError:
        pass

    sign = 1.0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(value) or position == 0:
        raise UsageError(f"Invalid duration: {text!r}", {"timeout": text})
    return sign * total


def _attach_timeout_values(argv: Sequence[str]) -> list[str]:
    """Glue "-timeout <value>" into one token so negative durations are not read as options."""
    joined: list[str] = []
    tokens = iter(argv)
    for token in tokens:
        if token in ("-timeout", "--timeout"):
            value = next(tokens, None)
            if value is not None:
                token = f"{token}={value}"
        joined.append(token)
    return joined


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="versionpurge",
        description=(
            "Irreversibly delete every object version and delete marker from a "
            "versioned S3 bucket so the bucket can be removed."
        ),
    )
    parser.add_argument("-max-keys", "--max-keys", dest="max_keys", type=int, default=None,
                        help="MaxKeys parameter for the ListObjectVersions API (1-1000, default: 1000)")
    parser.add_argument("-quiet", "--quiet", dest="quiet", action="store_true", default=None,
                        help="Suppress logging messages")
    parser.add_argument("-timeout", "--timeout", dest="timeout", default=None,
                        help="Timeout for the whole operation, e.g. 90s, 5m, 1h30m (default: none)")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--region", default=None, help="AWS region")
    parser.add_argument("--endpoint-url", dest="endpoint_url", default=None,
                        help="Custom S3 endpoint (MinIO, Ceph RGW, ...)")
    parser.add_argument("--profile", default=None, help="AWS shared-config profile")
    parser.add_argument("--max-empty-pages", dest="max_empty_pages", type=int, default=None,
                        help="Fail after this many consecutive empty pages with a live cursor")
    parser.add_argument("--json-logs", dest="json_logs", action="store_true", default=None,
                        help="Emit logs as JSON lines")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Log level (default: INFO)")
    parser.add_argument("bucket", nargs="?", help="Bucket to purge")
    return parser


def resolve_settings(args: argparse.Namespace) -> PurgeSettings:
    """Merge config-file settings with command-line overrides."""
    base = PurgeSettings.load(args.config)
    overrides: dict[str, Any] = {
        "max_keys": args.max_keys,
        "timeout_seconds": max(0.0, parse_duration(args.timeout)) if args.timeout is not None else None,
        "max_empty_pages": args.max_empty_pages,
        "s3.region": args.region,
        "s3.endpoint_url": args.endpoint_url,
        "s3.profile": args.profile,
        "logging.quiet": args.quiet,
        "logging.json_format": args.json_logs,
        "logging.level": args.log_level,
    }
    try:
        return base.merged(overrides)
    except ConfigurationError as exc:
        raise UsageError(exc.message, exc.details) from exc


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    parser = build_parser()

    try:
        args = parser.parse_args(_attach_timeout_values(sys.argv[1:] if argv is None else argv))
        if not args.bucket:
            raise UsageError("bucket is required")
        settings = resolve_settings(args)
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=err)
        parser.print_usage(err)
        return 1

    setup_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=settings.logging.log_file,
        quiet=settings.logging.quiet,
    )

    bucket = args.bucket
    deadline = Deadline.from_timeout(settings.timeout_seconds)
    try:
        client = create_s3_client(
            region=settings.s3.region,
            profile=settings.s3.profile,
            endpoint_url=settings.s3.endpoint_url,
            timeout_seconds=deadline.remaining(),
        )
    except BotoCoreError as exc:
        print(f"Error: failed to create S3 client: {exc}", file=err)
        return 1

    metrics = PurgeMetrics()
    result = purge_bucket(
        client,
        bucket,
        page_size=settings.max_keys,
        deadline=deadline,
        observer=CompositeObserver([LoggingObserver(bucket), metrics]),
        max_empty_pages=settings.max_empty_pages,
    )
    logger.info("Purge metrics: {}", metrics.to_dict())

    if result.error is not None:
        print(f"Error: {result.error.message}", file=err)
        print(
            f"Partial progress: purged {result.deleted_versions} versions of objects and "
            f"{result.deleted_delete_markers} object delete markers from s3://{bucket}",
            file=err,
        )
        return 1

    print(
        f"Purged {result.deleted_versions} versions of objects and "
        f"{result.deleted_delete_markers} object delete markers from s3://{bucket}",
        file=out,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
