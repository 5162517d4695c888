from datetime import timedelta
from typing import get_type_hints

import pytest

from app.domain.jobs.repository import JobRepository
from app.domain.jobs.service import JobService
from app.models import Activity
from app.services.estimate_sweeper import SweepReport, preview_sweep, sweep
from app.shared.dates import to_iso, utcnow
from app.shared.exceptions import SweepItemFailure, SystemicFailure


@pytest.fixture
def now():
    return utcnow()


def activities_for(db, job_id, activity_type=None):
    query = db.query(Activity).filter(Activity.job_id == job_id)
    if activity_type:
        query = query.filter(Activity.type == activity_type)
    return query.order_by(Activity.id.asc()).all()


def test_stale_in_progress_estimate_moves_to_sent_once(db, make_job, now):
    job = make_job(stage="ESTIMATE_IN_PROGRESS", updated_at=now - timedelta(days=6))

    report = sweep(db, now=now)

    db.refresh(job)
    assert report.moved_to_sent == 1
    assert report.job_ids_to_sent == [job.id]
    assert job.stage == "ESTIMATE_SENT"
    assert job.estimate["sentAt"] == to_iso(now)
    assert len(job.notes) == 1
    assert job.notes[0]["isStageChange"] is True
    assert job.notes[0]["content"] == (
        "Stage changed: Estimate Current, first 5 days → Estimate Sent (auto-moved after 5 days)"
    )
    stage_changes = activities_for(db, job.id, "stage_change")
    assert [a.note for a in stage_changes] == ["Auto-moved to ESTIMATE_SENT after 5 days"]

    second = sweep(db, now=now)

    db.refresh(job)
    assert second.moved_to_sent == 0
    assert second.moved_to_archive == 0
    assert len(job.notes) == 1
    assert len(activities_for(db, job.id, "stage_change")) == 1


def test_existing_estimate_fields_are_kept(db, make_job, now):
    job = make_job(updated_at=now - timedelta(days=8), estimate={"amount": 950.0})

    sweep(db, now=now)

    db.refresh(job)
    assert job.estimate == {"amount": 950.0, "sentAt": to_iso(now)}


def test_stale_sent_estimate_becomes_dead(db, make_job, now):
    job = make_job(stage="ESTIMATE_SENT", estimate={"sentAt": to_iso(now - timedelta(days=10))})

    report = sweep(db, now=now)

    db.refresh(job)
    assert report.moved_to_archive == 1
    assert report.job_ids_to_archive == [job.id]
    assert job.is_dead_estimate is True
    assert job.moved_to_dead_estimate_at == now
    assert job.notes[-1]["content"].startswith("Job auto-archived on ")
    assert job.notes[-1]["content"].endswith(" - no response after 5 days")

    archived = activities_for(db, job.id, "job_archived")
    assert len(archived) == 1
    assert archived[0].note.startswith("Auto-moved to archive on ")

    assert job.id not in [j.id for j in JobService(db).get_jobs()["jobs"]]
    assert sweep(db, now=now).moved_to_archive == 0


def test_recent_jobs_are_untouched(db, make_job, now):
    recent = make_job(stage="ESTIMATE_IN_PROGRESS", updated_at=now - timedelta(days=2))
    sent = make_job(stage="ESTIMATE_SENT", estimate={"sentAt": to_iso(now - timedelta(days=2))})
    unsent = make_job(stage="ESTIMATE_SENT", estimate={"amount": 10.0})
    before = {j.id: j.to_document() for j in (recent, sent, unsent)}

    report = sweep(db, now=now)

    assert report.moved_to_sent == 0
    assert report.moved_to_archive == 0
    for job in (recent, sent, unsent):
        db.refresh(job)
        assert job.to_document() == before[job.id]


def test_archived_and_dead_jobs_are_skipped(db, make_job, now):
    make_job(updated_at=now - timedelta(days=30), is_archived=True)
    make_job(
        stage="ESTIMATE_SENT",
        estimate={"sentAt": to_iso(now - timedelta(days=30))},
        is_dead_estimate=True,
    )

    report = sweep(db, now=now)
    assert (report.moved_to_sent, report.moved_to_archive) == (0, 0)


def test_moved_job_is_not_archived_in_same_sweep(db, make_job, now):
    job = make_job(updated_at=now - timedelta(days=40))

    report = sweep(db, now=now)

    db.refresh(job)
    assert report.job_ids_to_sent == [job.id]
    assert report.job_ids_to_archive == []
    assert job.is_dead_estimate is False


def test_flag_kept_without_activity_when_no_active_user(db, make_job, user, now):
    job = make_job(stage="ESTIMATE_SENT", estimate={"sentAt": to_iso(now - timedelta(days=10))})
    user.is_active = False
    db.commit()

    report = sweep(db, now=now)

    db.refresh(job)
    assert report.moved_to_archive == 1
    assert job.is_dead_estimate is True
    assert activities_for(db, job.id) == []


def test_activity_falls_back_to_another_active_user(db, make_job, user, other_user, now):
    job = make_job(stage="ESTIMATE_SENT", estimate={"sentAt": to_iso(now - timedelta(days=10))})
    user.is_active = False
    db.commit()

    sweep(db, now=now)

    assert activities_for(db, job.id)[0].created_by == other_user.id


def test_one_failing_job_does_not_abort_the_batch(db, make_job, now, monkeypatch):
    bad = make_job(title="Bad", updated_at=now - timedelta(days=6))
    good = make_job(title="Good", updated_at=now - timedelta(days=6))
    original_save = JobRepository.save

    def flaky_save(session, job):
        if job.id == bad.id:
            raise ValueError("disk quota exceeded")
        return original_save(session, job)

    monkeypatch.setattr(JobRepository, "save", staticmethod(flaky_save))

    report = sweep(db, now=now)

    assert report.job_ids_to_sent == [good.id]
    assert [(type(e), e.job_id) for e in report.errors] == [(SweepItemFailure, bad.id)]
    assert report.to_dict()["errors"] == [{"jobId": bad.id, "error": "disk quota exceeded"}]
    db.refresh(bad)
    assert bad.stage == "ESTIMATE_IN_PROGRESS"
    assert bad.notes == []


def test_query_failure_is_systemic(db, monkeypatch):
    def unavailable(session, cutoff):
        raise SystemicFailure("Database connection unavailable")

    monkeypatch.setattr(JobRepository, "find_stale_in_progress", staticmethod(unavailable))

    with pytest.raises(SystemicFailure):
        sweep(db)


def test_threshold_is_configurable(db, make_job, now):
    job = make_job(updated_at=now - timedelta(days=2))

    report = sweep(db, now=now, threshold_days=1)

    assert report.job_ids_to_sent == [job.id]
    assert "auto-moved after 1 days" in job.notes[0]["content"]


def test_report_message(db, now):
    report = sweep(db, now=now)
    assert report.to_dict() == {
        "movedToSent": 0,
        "movedToArchive": 0,
        "jobIdsToSent": [],
        "jobIdsToArchive": [],
        "errors": [],
        "message": "Moved 0 jobs to Estimate Sent, 0 jobs to archive",
    }


def test_report_field_types():
    hints = get_type_hints(SweepReport)
    assert hints["job_ids_to_sent"] == list[int]
    assert hints["job_ids_to_archive"] == list[int]
    assert hints["errors"] == list[SweepItemFailure]


def test_preview_lists_candidates_without_writing(db, make_job, now):
    stale = make_job(updated_at=now - timedelta(days=6))
    fresh = make_job(stage="ESTIMATE_SENT", estimate={"sentAt": to_iso(now - timedelta(days=1))})

    preview = preview_sweep(db, now=now)

    assert preview["thresholdDays"] == 5
    assert preview["estimateInProgress"] == [
        {
            "id": stale.id,
            "title": stale.title,
            "updatedAt": to_iso(now - timedelta(days=6)),
            "daysSinceUpdate": 6,
            "shouldMove": True,
        }
    ]
    assert preview["estimateSent"][0]["id"] == fresh.id
    assert preview["estimateSent"][0]["shouldArchive"] is False
    db.refresh(stale)
    assert stale.stage == "ESTIMATE_IN_PROGRESS"
