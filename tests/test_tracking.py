from datetime import datetime

import pytest

from app.domain.activities.tracking import (
    describe_changes,
    diff_documents,
    display_value,
    serialize_changes,
)


def sample_document():
    return {
        "id": 7,
        "title": "Kitchen countertops",
        "stage": "ESTIMATE_SENT",
        "valueEstimated": 4200.0,
        "schedule": {"startDate": "2026-11-02T08:00:00", "installer": "Crew A"},
        "estimate": {"amount": 4200.0, "lineItems": [{"description": "Quartz", "total": 4200.0}]},
        "notes": [{"id": "a", "content": "Called"}],
        "createdAt": datetime(2026, 10, 1, 9, 0),
        "updatedAt": datetime(2026, 10, 2, 9, 0),
    }


def test_identical_documents_have_no_changes():
    doc = sample_document()
    assert diff_documents(doc, sample_document()) == {}


def test_diff_does_not_modify_inputs():
    old, new = sample_document(), sample_document()
    new["title"] = "Bath vanity"
    diff_documents(old, new)
    assert old == sample_document()
    assert new["title"] == "Bath vanity"


@pytest.mark.parametrize("field", ["id", "_id", "version", "__v", "createdAt", "updatedAt", "notes"])
def test_metadata_fields_are_excluded(field):
    old = {field: 1, "title": "same"}
    new = {field: 2, "title": "same"}
    assert diff_documents(old, new) == {}


def test_excluded_fields_are_skipped_at_any_depth():
    old = {"estimate": {"id": "x", "amount": 1}}
    new = {"estimate": {"id": "y", "amount": 1}}
    assert diff_documents(old, new) == {}


def test_sub_document_notes_are_tracked_fields():
    old = {"appointment": {"notes": "a"}, "notes": [{"id": "n1"}]}
    new = {"appointment": {"notes": "b"}, "notes": [{"id": "n1"}, {"id": "n2"}]}
    assert diff_documents(old, new) == {"appointment.notes": {"from": "a", "to": "b"}}


def test_nested_change_reported_with_dotted_path():
    old, new = sample_document(), sample_document()
    new["schedule"]["installer"] = "Crew B"
    assert diff_documents(old, new) == {"schedule.installer": {"from": "Crew A", "to": "Crew B"}}


def test_new_sub_document_is_walked_from_empty():
    old = {"contract": None}
    new = {"contract": {"depositRequired": 500}}
    assert diff_documents(old, new) == {"contract.depositRequired": {"from": None, "to": 500}}


def test_removed_sub_document_is_reported_whole():
    old = {"calendar": {"googleEventId": "evt-1"}}
    new = {"calendar": None}
    assert diff_documents(old, new) == {"calendar": {"from": {"googleEventId": "evt-1"}, "to": None}}


def test_lists_compare_by_value():
    old, new = sample_document(), sample_document()
    assert diff_documents(old, new) == {}

    new["estimate"]["lineItems"].append({"description": "Sink cutout", "total": 150})
    changes = diff_documents(old, new)
    assert list(changes) == ["estimate.lineItems"]


def test_missing_and_none_are_equal_but_empty_string_differs():
    assert diff_documents({"color": None}, {}) == {}
    assert diff_documents({}, {"color": None}) == {}
    assert diff_documents({}, {"color": ""}) == {"color": {"from": None, "to": ""}}


def test_datetime_and_iso_string_compare_equal():
    old = {"archivedAt": datetime(2026, 10, 19, 15, 4)}
    new = {"archivedAt": "2026-10-19T15:04:00"}
    assert diff_documents(old, new) == {}


def test_custom_exclusions():
    old = {"title": "a", "color": "#fff"}
    new = {"title": "b", "color": "#000"}
    assert diff_documents(old, new, exclude={"color"}) == {"title": {"from": "a", "to": "b"}}


def test_serialize_changes_converts_datetimes():
    changes = {"archivedAt": {"from": None, "to": datetime(2026, 10, 19, 15, 4)}}
    assert serialize_changes(changes) == {"archivedAt": {"from": None, "to": "2026-10-19T15:04:00"}}


def test_describe_changes():
    changes = {
        "title": {"from": "Kitchen", "to": "Kitchen and bath"},
        "valueEstimated": {"from": 4200.0, "to": 5000.5},
        "color": {"from": None, "to": "#000"},
    }
    assert describe_changes(changes) == [
        "title: Kitchen → Kitchen and bath",
        "valueEstimated: 4200 → 5000.5",
        "color: empty → #000",
    ]


def test_display_value_renders_booleans_and_containers():
    assert display_value(True) == "true"
    assert display_value({"a": 1}) == '{"a": 1}'
