import pytest

from versionpurge.models import (
    DeletePhase,
    ListingPage,
    ObjectVersionRef,
    PaginationCursor,
    PurgeResult,
)


def test_object_version_ref_value_semantics():
    a = ObjectVersionRef("photos/cat.jpg", "v1")
    assert a == ObjectVersionRef("photos/cat.jpg", "v1")
    assert a != ObjectVersionRef("photos/cat.jpg", "v2")
    assert len({a, ObjectVersionRef("photos/cat.jpg", "v1")}) == 1
    assert a.to_identifier() == {"Key": "photos/cat.jpg", "VersionId": "v1"}


@pytest.mark.parametrize("key, version_id", [("", "v1"), ("k", "")])
def test_object_version_ref_rejects_empty_fields(key, version_id):
    with pytest.raises(ValueError):
        ObjectVersionRef(key, version_id)


def test_object_version_ref_is_immutable():
    ref = ObjectVersionRef("k", "v")
    with pytest.raises(AttributeError):
        ref.key = "other"  # type: ignore[misc]


def test_cursor_start_is_exhausted():
    cursor = PaginationCursor.start()
    assert cursor.is_exhausted
    assert cursor.to_request_params() == {}
    assert cursor.describe() == "start"


def test_cursor_request_params_only_include_present_markers():
    assert PaginationCursor("k", None).to_request_params() == {"KeyMarker": "k"}
    assert PaginationCursor("k", "v").to_request_params() == {
        "KeyMarker": "k",
        "VersionIdMarker": "v",
    }
    assert not PaginationCursor(None, "v").is_exhausted


def test_page_is_final_requires_both_conditions():
    ref = ObjectVersionRef("k", "v")
    assert ListingPage().is_final
    assert not ListingPage(versions=(ref,)).is_final
    assert not ListingPage(delete_markers=(ref,)).is_final
    assert not ListingPage(next_cursor=PaginationCursor("k", None)).is_final
    assert not ListingPage(next_cursor=PaginationCursor(None, "v")).is_final


def test_purge_result_record_and_tuple():
    result = PurgeResult()
    result.record(DeletePhase.VERSIONS, 3)
    result.record(DeletePhase.DELETE_MARKERS, 2)
    result.record(DeletePhase.VERSIONS, 1)
    assert result.as_tuple() == (4, 2, None)
    assert result.total == 6
    assert result.ok


def test_purge_result_rejects_negative_counts():
    with pytest.raises(ValueError):
        PurgeResult().record(DeletePhase.VERSIONS, -1)
