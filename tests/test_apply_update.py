import pytest

from app.domain.activities.repository import ActivityRepository
from app.domain.jobs.schemas import JobUpdate
from app.domain.jobs.service import JobService
from app.models import Activity
from app.shared.exceptions import AuditEmissionFailure, NotFoundError, ValidationError


def activities_for(db, job_id, activity_type=None):
    query = db.query(Activity).filter(Activity.job_id == job_id)
    if activity_type:
        query = query.filter(Activity.type == activity_type)
    return query.order_by(Activity.id.asc()).all()


@pytest.fixture
def job(make_job):
    return make_job(
        stage="ESTIMATE_SENT",
        estimate={"amount": 4200.0, "sentAt": "2026-10-10T09:00:00"},
        schedule={"installer": "Crew A"},
    )


def test_identical_patch_emits_nothing(db, job, user):
    doc = job.to_document()
    patch = {k: doc[k] for k in ("title", "stage", "valueEstimated", "estimate", "schedule", "color")}

    JobService(db).apply_update(job, patch, user)

    assert activities_for(db, job.id) == []


def test_field_update_round_trips_and_logs_diff(db, job, user):
    patch = {
        "title": "Kitchen and bath",
        "valueEstimated": 5100.0,
        "estimate": {"amount": 5100.0, "sentAt": "2026-10-10T09:00:00"},
        "takeoff": {"notes": "Measure twice"},
    }
    JobService(db).apply_update(job, patch, user)

    db.expire_all()
    stored = job.to_document()
    for key, value in patch.items():
        assert stored[key] == value

    updates = activities_for(db, job.id, "job_updated")
    assert len(updates) == 1
    assert updates[0].changes == {
        "title": {"from": "Kitchen countertops", "to": "Kitchen and bath"},
        "valueEstimated": {"from": 4200.0, "to": 5100.0},
        "estimate.amount": {"from": 4200.0, "to": 5100.0},
        "takeoff.notes": {"from": None, "to": "Measure twice"},
    }
    assert updates[0].note.startswith("Job updated: title: Kitchen countertops → Kitchen and bath")
    assert "takeoff.notes: empty → Measure twice" in updates[0].note


def test_appointment_notes_edit_is_logged(db, make_job, user):
    job = make_job(appointment={"location": "Site", "notes": "Gate code 1234"})

    JobService(db).apply_update(job, {"appointment": {"location": "Site", "notes": "Gate code 9999"}}, user)

    updates = activities_for(db, job.id, "job_updated")
    assert len(updates) == 1
    assert updates[0].changes == {"appointment.notes": {"from": "Gate code 1234", "to": "Gate code 9999"}}


def test_stage_change_through_update_logs_both_views(db, job, user):
    JobService(db).apply_update(job, {"stage": "CONTRACT_OUT"}, user)

    types = [a.type for a in activities_for(db, job.id)]
    assert types == ["job_updated", "stage_change"]
    stage_change = activities_for(db, job.id, "stage_change")[0]
    assert stage_change.note == "Stage changed from ESTIMATE_SENT to CONTRACT_OUT"


def test_schedule_date_change_is_logged_separately(db, job, user):
    patch = {
        "schedule": {"startDate": "2026-11-02T08:00:00", "endDate": "2026-11-04T17:00:00", "installer": "Crew B"},
        "color": "#FF9800",
    }
    JobService(db).apply_update(job, patch, user)

    trail = activities_for(db, job.id)
    assert [a.type for a in trail] == ["job_updated", "job_scheduled"]

    job_updated, job_scheduled = trail
    assert "color" in job_updated.changes
    assert not any(path.startswith("schedule") for path in job_updated.changes)
    assert "schedule" not in job_updated.note
    assert job_scheduled.note == "Schedule updated: Start: 11/2/2026, End: 11/4/2026"


def test_schedule_only_change_emits_no_generic_update(db, job, user):
    JobService(db).apply_update(job, {"schedule": {"startDate": "2026-11-02T08:00:00", "installer": "Crew A"}}, user)

    assert [a.type for a in activities_for(db, job.id)] == ["job_scheduled"]


def test_same_instant_in_another_format_is_not_a_schedule_change(db, make_job, user):
    job = make_job(schedule={"startDate": "2026-11-02T08:00:00"})

    JobService(db).apply_update(job, {"schedule": {"startDate": "2026-11-02T08:00:00Z"}}, user)

    assert activities_for(db, job.id, "job_scheduled") == []
    for activity in activities_for(db, job.id, "job_updated"):
        assert "schedule.startDate" not in activity.changes


def test_clearing_schedule_dates(db, make_job, user):
    job = make_job(schedule={"startDate": "2026-11-02T08:00:00", "endDate": "2026-11-03T08:00:00"})

    JobService(db).apply_update(job, {"schedule": None}, user)

    assert [a.note for a in activities_for(db, job.id)] == ["Schedule cleared"]


def test_new_notes_are_appended_and_stamped(db, job, user):
    service = JobService(db)
    service.apply_update(job, {"notes": [{"content": "Left voicemail", "createdBy": 999}]}, user)
    first = job.notes[0]

    patch = {
        "notes": [
            {**first, "content": "edited by client"},
            {"content": "Customer called back", "isAppointment": True},
            {"content": ""},
        ]
    }
    service.apply_update(job, patch, user)

    db.refresh(job)
    assert [n["content"] for n in job.notes] == ["Left voicemail", "Customer called back"]
    assert all(n["createdBy"] == user.id for n in job.notes)
    assert job.notes[1]["isAppointment"] is True
    assert job.notes[1]["isStageChange"] is False
    assert job.notes[1]["id"] != first["id"]

    note_activities = activities_for(db, job.id, "note")
    assert [a.note for a in note_activities] == ["Left voicemail", "Customer called back"]
    assert activities_for(db, job.id, "job_updated") == []


def test_emission_order(db, job, user):
    patch = {
        "title": "Renamed",
        "stage": "ENGAGED_DESIGN_REVIEW",
        "schedule": {"startDate": "2026-12-01T08:00:00"},
        "notes": [{"content": "Sent revised drawings"}],
    }
    JobService(db).apply_update(job, patch, user)

    assert [a.type for a in activities_for(db, job.id)] == [
        "job_updated",
        "stage_change",
        "job_scheduled",
        "note",
    ]


def test_patch_from_request_schema(db, job, user):
    patch = JobUpdate(valueContracted=3900, finalPayment={"amountDue": 3900}).to_patch()
    JobService(db).apply_update(job, patch, user)

    assert job.value_contracted == 3900
    assert job.final_payment == {"amountDue": 3900.0}


@pytest.mark.parametrize(
    "patch",
    [
        {"stage": "WON"},
        {"customerId": 12345},
        {"createdBy": 12345},
        {"isArchived": True},
        {"isDeadEstimate": True},
        {"unknownField": 1},
        {"valueEstimated": -5},
        {"title": "   "},
        {"notes": "not a list"},
        {"source": "billboard"},
        {"color": None},
    ],
)
def test_invalid_patch_is_rejected_before_any_write(db, job, user, patch):
    before = job.to_document()

    with pytest.raises(ValidationError):
        JobService(db).apply_update(job, {"title": "Should not stick", **patch}, user)

    db.refresh(job)
    assert job.to_document() == before
    assert activities_for(db, job.id) == []


def test_unchanged_immutable_fields_are_ignored(db, job, user):
    doc = job.to_document()
    patch = {"id": doc["id"], "customerId": doc["customerId"], "createdAt": doc["createdAt"], "title": "New"}

    JobService(db).apply_update(job, patch, user)
    assert job.title == "New"


def test_unknown_assignee_is_not_found(db, job, user):
    with pytest.raises(NotFoundError):
        JobService(db).apply_update(job, {"assignedTo": 4242}, user)


def test_update_survives_audit_failure(db, job, user, monkeypatch):
    def fail(db, **fields):
        raise AuditEmissionFailure("activity store unavailable")

    monkeypatch.setattr(ActivityRepository, "create", staticmethod(fail))

    JobService(db).apply_update(job, {"title": "Still saved", "stage": "CONTRACT_OUT"}, user)

    db.refresh(job)
    assert job.title == "Still saved"
    assert job.stage == "CONTRACT_OUT"
