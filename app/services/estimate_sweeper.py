"""
Automated estimate transitions
Moves stale ESTIMATE_IN_PROGRESS jobs to ESTIMATE_SENT
Flags ESTIMATE_SENT jobs with no response as dead estimates
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import STALE_ESTIMATE_DAYS
from ..domain.activities.service import record_activity
from ..domain.jobs.repository import JobRepository
from ..domain.jobs.service import build_note
from ..domain.jobs.stages import JobStage, stage_label
from ..domain.users.repository import UserRepository
from ..models import Job, User
from ..shared.dates import format_timestamp, parse_instant, to_iso, utcnow
from ..shared.exceptions import SweepItemFailure, SystemicFailure

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    moved_to_sent: int = 0
    moved_to_archive: int = 0
    job_ids_to_sent: list[int] = field(default_factory=list)
    job_ids_to_archive: list[int] = field(default_factory=list)
    errors: list[SweepItemFailure] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Moved {self.moved_to_sent} jobs to Estimate Sent, "
            f"{self.moved_to_archive} jobs to archive"
        )

    def to_dict(self) -> dict:
        return {
            "movedToSent": self.moved_to_sent,
            "movedToArchive": self.moved_to_archive,
            "jobIdsToSent": self.job_ids_to_sent,
            "jobIdsToArchive": self.job_ids_to_archive,
            "errors": [error.to_dict() for error in self.errors],
            "message": self.message,
        }


def resolve_system_actor(db: Session, job: Job) -> Optional[User]:
    """Job creator if still active, else any active user"""
    if job.created_by:
        creator = UserRepository.get_active_by_id(db, job.created_by)
        if creator:
            return creator
    return UserRepository.get_any_active(db)


def _last_touched(job: Job) -> Optional[datetime]:
    return job.updated_at or job.created_at


def _sent_at(job: Job) -> Optional[datetime]:
    return parse_instant((job.estimate or {}).get("sentAt"))


def _days_since(value: Optional[datetime], now: datetime) -> Optional[int]:
    if value is None:
        return None
    return (now - value).days


def _advance_to_sent(db: Session, job: Job, now: datetime, threshold_days: int) -> None:
    from_stage = job.stage
    to_stage = JobStage.ESTIMATE_SENT.value
    actor = resolve_system_actor(db, job)

    job.stage = to_stage
    job.estimate = {**(job.estimate or {}), "sentAt": to_iso(now)}
    job.updated_at = now
    job.notes = [
        *(job.notes or []),
        build_note(
            f"Stage changed: {stage_label(from_stage)} → {stage_label(to_stage)} "
            f"(auto-moved after {threshold_days} days)",
            actor.id if actor else None,
            now,
            is_stage_change=True,
        ),
    ]
    JobRepository.save(db, job)

    if actor:
        record_activity(
            db,
            "stage_change",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            from_stage=from_stage,
            to_stage=to_stage,
            note=f"Auto-moved to {to_stage} after {threshold_days} days",
        )
    else:
        logger.warning(f"⚠️ No active user to attribute auto-move of job {job.id}, activity skipped")


def _archive_dead_estimate(db: Session, job: Job, now: datetime, threshold_days: int) -> None:
    timestamp = format_timestamp(now)
    actor = resolve_system_actor(db, job)

    job.is_dead_estimate = True
    job.moved_to_dead_estimate_at = now
    job.notes = [
        *(job.notes or []),
        build_note(
            f"Job auto-archived on {timestamp} - no response after {threshold_days} days",
            actor.id if actor else None,
            now,
        ),
    ]
    JobRepository.save(db, job)

    if actor:
        record_activity(
            db,
            "job_archived",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            note=f"Auto-moved to archive on {timestamp} - no response after {threshold_days} days",
        )
    else:
        logger.warning(f"⚠️ No active user to attribute archive of job {job.id}, activity skipped")


def sweep(db: Session, now: Optional[datetime] = None, threshold_days: int = STALE_ESTIMATE_DAYS) -> SweepReport:
    """
    Advance or archive stale estimates based on elapsed time
    Should be run as a scheduled job (hourly cron in the worker)

    Pass A: ESTIMATE_IN_PROGRESS untouched for threshold_days → ESTIMATE_SENT
    Pass B: ESTIMATE_SENT with estimate.sentAt older than threshold_days → dead estimate

    A failing job is rolled back and reported; the batch continues. Only a
    query failure (database unreachable) raises.

    Returns:
        SweepReport: Counts, job ids and per-job errors
    """
    now = now or utcnow()
    cutoff = now - timedelta(days=threshold_days)
    report = SweepReport()

    logger.info(f"🧹 Estimate sweep started (cutoff {cutoff.isoformat()}, {threshold_days} days)")

    # 1. ESTIMATE_IN_PROGRESS → ESTIMATE_SENT
    for job in JobRepository.find_stale_in_progress(db, cutoff):
        try:
            _advance_to_sent(db, job, now, threshold_days)
            report.moved_to_sent += 1
            report.job_ids_to_sent.append(job.id)
            logger.info(f"✅ Job {job.id} auto-moved: ESTIMATE_IN_PROGRESS → ESTIMATE_SENT")
        except SystemicFailure:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Error auto-moving job {job.id} to ESTIMATE_SENT: {str(e)}")
            report.errors.append(SweepItemFailure(job.id, str(e)))

    # 2. ESTIMATE_SENT → dead estimate
    for job in JobRepository.find_active_sent_estimates(db):
        sent_at = _sent_at(job)
        if sent_at is None or sent_at > cutoff:
            continue
        try:
            _archive_dead_estimate(db, job, now, threshold_days)
            report.moved_to_archive += 1
            report.job_ids_to_archive.append(job.id)
            logger.info(f"✅ Job {job.id} auto-archived as dead estimate")
        except SystemicFailure:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Error archiving job {job.id}: {str(e)}")
            report.errors.append(SweepItemFailure(job.id, str(e)))

    if report.moved_to_sent or report.moved_to_archive or report.errors:
        logger.info(f"📊 Estimate sweep summary: {report.message}, {len(report.errors)} errors")
    else:
        logger.debug("ℹ️ No estimates needed sweeping")

    return report


def preview_sweep(db: Session, now: Optional[datetime] = None, threshold_days: int = STALE_ESTIMATE_DAYS) -> dict:
    """Read-only view of what the next sweep would touch"""
    now = now or utcnow()
    cutoff = now - timedelta(days=threshold_days)

    in_progress = []
    for job in JobRepository.find_active_in_stage(db, JobStage.ESTIMATE_IN_PROGRESS.value):
        touched = _last_touched(job)
        in_progress.append(
            {
                "id": job.id,
                "title": job.title,
                "updatedAt": to_iso(touched),
                "daysSinceUpdate": _days_since(touched, now),
                "shouldMove": touched is not None and touched <= cutoff,
            }
        )

    sent = []
    for job in JobRepository.find_active_in_stage(db, JobStage.ESTIMATE_SENT.value):
        sent_at = _sent_at(job)
        sent.append(
            {
                "id": job.id,
                "title": job.title,
                "sentAt": to_iso(sent_at),
                "daysSinceSent": _days_since(sent_at, now),
                "shouldArchive": sent_at is not None and sent_at <= cutoff,
            }
        )

    return {
        "now": to_iso(now),
        "cutoff": to_iso(cutoff),
        "thresholdDays": threshold_days,
        "estimateInProgress": in_progress,
        "estimateSent": sent,
    }
