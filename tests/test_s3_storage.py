from __future__ import annotations

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from versionpurge.cancellation import Deadline
from versionpurge.exceptions import ConfigurationError, DeleteError, ListError, PurgeCancelledError
from versionpurge.models import DeletePhase, ObjectVersionRef, PaginationCursor
from versionpurge.orchestrator import purge_bucket
from versionpurge.storage.s3 import S3BatchDeleter, S3StorageLister, create_s3_client

BUCKET = "versioned-bucket"


@pytest.fixture()
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class FakeDeleteClient:
    """Records DeleteObjects requests; optionally fails on the n-th call."""

    def __init__(self, fail_on_call: int | None = None, errors_on_call: int | None = None):
        self.requests: list[dict] = []
        self.fail_on_call = fail_on_call
        self.errors_on_call = errors_on_call

    def delete_objects(self, **kwargs):
        self.requests.append(kwargs)
        call = len(self.requests)
        if call == self.fail_on_call:
            raise ClientError(
                {"Error": {"Code": "SlowDown", "Message": "Please reduce your request rate."}},
                "DeleteObjects",
            )
        if call == self.errors_on_call:
            first = kwargs["Delete"]["Objects"][0]
            return {
                "Errors": [
                    {
                        "Key": first["Key"],
                        "VersionId": first["VersionId"],
                        "Code": "AccessDenied",
                        "Message": "Access Denied",
                    }
                ]
            }
        return {}


def _refs(n: int) -> list[ObjectVersionRef]:
    return [ObjectVersionRef(f"key-{i:05d}", f"v{i}") for i in range(n)]


def test_list_page_translates_response(s3_client):
    lister = S3StorageLister(s3_client, BUCKET)
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "list_object_versions",
            {
                "Versions": [
                    {"Key": "a.txt", "VersionId": "va1", "IsLatest": True},
                    {"Key": "a.txt", "VersionId": "va0", "IsLatest": False},
                ],
                "DeleteMarkers": [{"Key": "b.txt", "VersionId": "db1", "IsLatest": True}],
                "NextKeyMarker": "b.txt",
                "NextVersionIdMarker": "db1",
                "IsTruncated": True,
            },
            expected_params={"Bucket": BUCKET, "MaxKeys": 3},
        )
        page = lister.list_page(PaginationCursor.start(), 3)
        stubber.assert_no_pending_responses()

    assert page.versions == (ObjectVersionRef("a.txt", "va1"), ObjectVersionRef("a.txt", "va0"))
    assert page.delete_markers == (ObjectVersionRef("b.txt", "db1"),)
    assert page.next_cursor == PaginationCursor("b.txt", "db1")


def test_list_page_sends_both_markers(s3_client):
    lister = S3StorageLister(s3_client, BUCKET)
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "list_object_versions",
            {"IsTruncated": False},
            expected_params={
                "Bucket": BUCKET,
                "MaxKeys": 1000,
                "KeyMarker": "b.txt",
                "VersionIdMarker": "db1",
            },
        )
        page = lister.list_page(PaginationCursor("b.txt", "db1"), 1000)

    assert page.is_final


def test_list_page_wraps_client_error(s3_client):
    lister = S3StorageLister(s3_client, BUCKET)
    with Stubber(s3_client) as stubber:
        stubber.add_client_error(
            "list_object_versions",
            service_error_code="NoSuchBucket",
            service_message="The specified bucket does not exist",
            http_status_code=404,
        )
        with pytest.raises(ListError) as excinfo:
            lister.list_page(PaginationCursor.start(), 1000)

    assert excinfo.value.details["code"] == "NoSuchBucket"
    assert excinfo.value.details["bucket"] == BUCKET
    assert excinfo.value.__cause__ is not None


class FakeListClient:
    def __init__(self, response: dict):
        self.response = response

    def list_object_versions(self, **kwargs):
        return self.response


@pytest.mark.parametrize(
    "response, field",
    [
        ({"Versions": [{"Key": "a.txt", "VersionId": ""}]}, "Versions"),
        ({"Versions": [{"Key": "a.txt"}]}, "Versions"),
        ({"DeleteMarkers": [{"VersionId": "dm1"}]}, "DeleteMarkers"),
        ({"DeleteMarkers": [None]}, "DeleteMarkers"),
    ],
)
def test_list_page_rejects_unusable_entries(response, field):
    lister = S3StorageLister(FakeListClient(response), BUCKET)

    with pytest.raises(ListError) as excinfo:
        lister.list_page(PaginationCursor.start(), 1000)

    assert excinfo.value.details["bucket"] == BUCKET
    assert excinfo.value.details["field"] == field
    assert excinfo.value.details["entry"] == repr(response[field][0])


def test_unusable_entry_fails_run_with_partial_counts():
    class TwoPageClient(FakeDeleteClient):
        def __init__(self):
            super().__init__()
            self.pages = [
                {
                    "Versions": [{"Key": "a.txt", "VersionId": "v1"}],
                    "NextKeyMarker": "a.txt",
                    "NextVersionIdMarker": "v1",
                },
                {"Versions": [{"Key": "b.txt", "VersionId": ""}]},
            ]

        def list_object_versions(self, **kwargs):
            return self.pages.pop(0)

    result = purge_bucket(TwoPageClient(), BUCKET)

    assert result.deleted_versions == 1
    assert isinstance(result.error, ListError)


def test_list_page_validates_page_size(s3_client):
    with pytest.raises(ConfigurationError):
        S3StorageLister(s3_client, BUCKET).list_page(PaginationCursor.start(), 1001)


def test_list_page_not_issued_after_deadline(s3_client):
    deadline = Deadline(expires_at=50.0, clock=lambda: 100.0)
    with Stubber(s3_client):
        with pytest.raises(PurgeCancelledError):
            S3StorageLister(s3_client, BUCKET).list_page(PaginationCursor.start(), 10, deadline)


def test_batch_splitting_preserves_order():
    client = FakeDeleteClient()
    refs = _refs(2500)

    S3BatchDeleter(client, BUCKET).delete_all(refs, DeletePhase.VERSIONS)

    sizes = [len(req["Delete"]["Objects"]) for req in client.requests]
    assert sizes == [1000, 1000, 500]
    sent = [obj["Key"] for req in client.requests for obj in req["Delete"]["Objects"]]
    assert sent == [ref.key for ref in refs]
    assert all(req["Bucket"] == BUCKET and req["Delete"]["Quiet"] is True for req in client.requests)


def test_delete_of_empty_list_makes_no_calls():
    client = FakeDeleteClient()
    S3BatchDeleter(client, BUCKET).delete_all([], DeletePhase.VERSIONS)
    assert client.requests == []


def test_chunk_failure_aborts_remaining_chunks():
    client = FakeDeleteClient(fail_on_call=2)

    with pytest.raises(DeleteError) as excinfo:
        S3BatchDeleter(client, BUCKET).delete_all(_refs(2500), DeletePhase.DELETE_MARKERS)

    assert len(client.requests) == 2
    assert excinfo.value.phase is DeletePhase.DELETE_MARKERS
    assert excinfo.value.details["code"] == "SlowDown"


def test_per_key_errors_in_response_fail_the_batch():
    client = FakeDeleteClient(errors_on_call=1)

    with pytest.raises(DeleteError) as excinfo:
        S3BatchDeleter(client, BUCKET).delete_all(_refs(10), DeletePhase.VERSIONS)

    assert excinfo.value.details["code"] == "AccessDenied"
    assert excinfo.value.details["key"] == "key-00000"
    assert excinfo.value.phase is DeletePhase.VERSIONS


def test_delete_objects_client_error_via_stubber(s3_client):
    deleter = S3BatchDeleter(s3_client, BUCKET)
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("delete_objects", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(DeleteError) as excinfo:
            deleter.delete_all([ObjectVersionRef("k", "v")], DeletePhase.VERSIONS)

    assert excinfo.value.details["code"] == "AccessDenied"


def test_deadline_is_checked_before_every_chunk():
    deadline = Deadline()

    class CancellingClient(FakeDeleteClient):
        def delete_objects(self, **kwargs):
            response = super().delete_objects(**kwargs)
            deadline.cancel()
            return response

    client = CancellingClient()

    with pytest.raises(PurgeCancelledError) as excinfo:
        S3BatchDeleter(client, BUCKET).delete_all(_refs(1500), DeletePhase.VERSIONS, deadline)

    assert len(client.requests) == 1
    assert len(client.requests[0]["Delete"]["Objects"]) == 1000
    assert excinfo.value.details == {"operation": "DeleteObjects", "reason": "cancelled"}


def test_batch_size_bounds():
    with pytest.raises(ValueError):
        S3BatchDeleter(FakeDeleteClient(), BUCKET, batch_size=1001)


def test_purge_bucket_end_to_end_with_stubber(s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "list_object_versions",
            {
                "Versions": [{"Key": "a", "VersionId": "1"}, {"Key": "b", "VersionId": "2"}],
                "DeleteMarkers": [{"Key": "c", "VersionId": "3"}],
                "NextKeyMarker": "c",
                "NextVersionIdMarker": "3",
            },
            expected_params={"Bucket": BUCKET, "MaxKeys": 3},
        )
        stubber.add_response(
            "delete_objects",
            {},
            expected_params={
                "Bucket": BUCKET,
                "Delete": {
                    "Objects": [{"Key": "a", "VersionId": "1"}, {"Key": "b", "VersionId": "2"}],
                    "Quiet": True,
                },
            },
        )
        stubber.add_response(
            "delete_objects",
            {},
            expected_params={
                "Bucket": BUCKET,
                "Delete": {"Objects": [{"Key": "c", "VersionId": "3"}], "Quiet": True},
            },
        )
        stubber.add_response(
            "list_object_versions",
            {},
            expected_params={"Bucket": BUCKET, "MaxKeys": 3, "KeyMarker": "c", "VersionIdMarker": "3"},
        )

        result = purge_bucket(s3_client, BUCKET, page_size=3)
        stubber.assert_no_pending_responses()

    assert result.as_tuple() == (2, 1, None)


def test_create_s3_client_caps_timeouts():
    client = create_s3_client(region="us-east-1", timeout_seconds=15)
    assert client.meta.config.read_timeout == 15
    assert client.meta.config.connect_timeout == 15
    assert client.meta.region_name == "us-east-1"


def test_create_s3_client_uses_endpoint_url():
    client = create_s3_client(region="us-east-1", endpoint_url="http://localhost:9000")
    assert client.meta.endpoint_url == "http://localhost:9000"
    assert client.meta.config.read_timeout == 60
