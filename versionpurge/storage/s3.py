from __future__ import annotations

from typing import Any, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from versionpurge.cancellation import Deadline, check_deadline
from versionpurge.exceptions import DeleteError, ListError
from versionpurge.models import DeletePhase, ListingPage, ObjectVersionRef, PaginationCursor
from versionpurge.storage import MAX_DELETE_BATCH, chunked, validate_page_size

# botocore's own default for both connect and read timeouts.
_DEFAULT_CALL_TIMEOUT = 60.0


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", "Unknown"))
    return type(exc).__name__


def create_s3_client(
    *,
    region: Optional[str] = None,
    profile: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
) -> Any:
    """Build a boto3 S3 client with a single attempt per call.

    Credentials are resolved by boto3 (environment, shared config, profile).
    When ``timeout_seconds`` is positive, socket timeouts are capped by it so a
    single call cannot outlive the run's deadline by much.
    """
    session = boto3.session.Session(profile_name=profile, region_name=region)
    call_timeout = _DEFAULT_CALL_TIMEOUT
    if timeout_seconds and timeout_seconds > 0:
        call_timeout = min(call_timeout, timeout_seconds)
    config = Config(
        retries={"mode": "standard", "max_attempts": 1},
        connect_timeout=call_timeout,
        read_timeout=call_timeout,
    )
    return session.client("s3", endpoint_url=endpoint_url, config=config)


def _to_refs(bucket: str, field: str, entries: Sequence[dict[str, Any]] | None) -> tuple[ObjectVersionRef, ...]:
    if not entries:
        return ()
    refs = []
    for entry in entries:
        try:
            refs.append(ObjectVersionRef(key=entry["Key"], version_id=entry["VersionId"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ListError(
                f"ListObjectVersions returned an unusable {field} entry: {exc}",
                {"bucket": bucket, "field": field, "entry": repr(entry)},
            ) from exc
    return tuple(refs)


class S3StorageLister:
    """Translates ListObjectVersions responses into ListingPage values."""

    def __init__(self, client: Any, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def list_page(
        self,
        cursor: PaginationCursor,
        page_size: int,
        deadline: Optional[Deadline] = None,
    ) -> ListingPage:
        validate_page_size(page_size)
        check_deadline(deadline, "ListObjectVersions")

        params: dict[str, Any] = {"Bucket": self.bucket, "MaxKeys": page_size}
        params.update(cursor.to_request_params())

        try:
            out = self.client.list_object_versions(**params)
        except (ClientError, BotoCoreError) as exc:
            raise ListError(
                f"ListObjectVersions API error: {exc}",
                {
                    "bucket": self.bucket,
                    "code": _error_code(exc),
                    "cursor": cursor.describe(),
                },
            ) from exc

        page = ListingPage(
            versions=_to_refs(self.bucket, "Versions", out.get("Versions")),
            delete_markers=_to_refs(self.bucket, "DeleteMarkers", out.get("DeleteMarkers")),
            next_cursor=PaginationCursor(
                key_marker=out.get("NextKeyMarker"),
                version_id_marker=out.get("NextVersionIdMarker"),
            ),
        )
        logger.debug(
            "ListObjectVersions s3://{} returned {} versions, {} delete markers",
            self.bucket,
            len(page.versions),
            len(page.delete_markers),
        )
        return page


class S3BatchDeleter:
    """Issues DeleteObjects calls of at most ``batch_size`` keys each."""

    def __init__(self, client: Any, bucket: str, batch_size: int = MAX_DELETE_BATCH) -> None:
        if not 1 <= batch_size <= MAX_DELETE_BATCH:
            raise ValueError(f"batch_size must be between 1 and {MAX_DELETE_BATCH}")
        self.client = client
        self.bucket = bucket
        self.batch_size = batch_size

    def delete_all(
        self,
        objects: Sequence[ObjectVersionRef],
        phase: DeletePhase,
        deadline: Optional[Deadline] = None,
    ) -> None:
        for chunk in chunked(objects, self.batch_size):
            check_deadline(deadline, "DeleteObjects")
            self._delete_chunk(chunk, phase)

    def _delete_chunk(self, chunk: Sequence[ObjectVersionRef], phase: DeletePhase) -> None:
        logger.debug("Calling DeleteObjects API with {} {}", len(chunk), phase.value)
        try:
            response = self.client.delete_objects(
                Bucket=self.bucket,
                Delete={
                    "Objects": [ref.to_identifier() for ref in chunk],
                    "Quiet": True,
                },
            )
        except (ClientError, BotoCoreError) as exc:
            raise DeleteError(
                f"DeleteObjects API error while deleting {phase.value}: {exc}",
                phase,
                {"bucket": self.bucket, "code": _error_code(exc), "batch_size": str(len(chunk))},
            ) from exc

        # DeleteObjects reports per-key failures inside a successful response.
        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            raise DeleteError(
                f"DeleteObjects failed for {len(errors)} of {len(chunk)} {phase.value}: "
                f"{first.get('Key')} ({first.get('Code')}: {first.get('Message')})",
                phase,
                {
                    "bucket": self.bucket,
                    "code": str(first.get("Code", "Unknown")),
                    "key": str(first.get("Key", "")),
                    "version_id": str(first.get("VersionId", "")),
                    "failed": str(len(errors)),
                },
            )


__all__ = ["S3StorageLister", "S3BatchDeleter", "create_s3_client"]
