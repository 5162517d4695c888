"""
Job service - Stage transitions, change tracking and archive operations.

Every mutation follows the same shape: validate (nothing written on
failure), apply the change to the job row, commit it, then emit activities.
Activity emission is best-effort; once the job commit succeeded nothing
afterwards can fail or roll back the operation.

The acting user is always passed in. Resolving who that is (including any
auth-optional fallback) is the request layer's job, see ``app.auth``.
"""

import logging
import math
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...config import STALE_ESTIMATE_DAYS
from ...models import JOB_DOCUMENT_FIELDS, LEAD_SOURCES, Job, User
from ...shared.dates import format_date, format_timestamp, group_by_month, parse_instant, to_iso, utcnow
from ...shared.exceptions import InvalidTransition, NotFoundError, ValidationError
from ..activities.service import record_activity
from ..activities.tracking import describe_changes, diff_documents, serialize_changes
from ..users.repository import UserRepository
from .repository import JobRepository
from .schemas import JobCreate
from .stages import DEFAULT_CREATION_STAGE, PIPELINE_STAGES, JobStage, is_valid_stage, stage_label

logger = logging.getLogger(__name__)

# Fields a patch may set, wire name -> column
UPDATABLE_FIELDS = {
    "title": "title",
    "stage": "stage",
    "valueEstimated": "value_estimated",
    "valueContracted": "value_contracted",
    "source": "source",
    "assignedTo": "assigned_to",
    "appointment": "appointment",
    "estimate": "estimate",
    "contract": "contract",
    "takeoff": "takeoff",
    "schedule": "schedule",
    "calendar": "calendar",
    "finalPayment": "final_payment",
    "color": "color",
}

# Accepted in a patch only when unchanged
IMMUTABLE_FIELDS = ("id", "customerId", "createdBy", "createdAt", "updatedAt")

# Reported through job_scheduled, never through the generic job_updated entry
SCHEDULE_DATE_PATHS = ("schedule.startDate", "schedule.endDate")


def build_note(
    content: str,
    created_by: Optional[int],
    created_at: datetime,
    is_stage_change: bool = False,
    is_appointment: bool = False,
) -> dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "content": content,
        "createdBy": created_by,
        "createdAt": to_iso(created_at),
        "isStageChange": bool(is_stage_change),
        "isAppointment": bool(is_appointment),
    }


def append_note(job: Job, note: dict[str, Any]) -> None:
    # Assign a new list so the JSON column is flagged dirty
    job.notes = [*(job.notes or []), note]


def schedule_dates_changed(old_schedule: Optional[dict], new_schedule: Optional[dict]) -> bool:
    """Compare start/end as instants: a datetime and its ISO string are equal"""
    old_schedule = old_schedule or {}
    new_schedule = new_schedule or {}
    return any(
        parse_instant(old_schedule.get(key)) != parse_instant(new_schedule.get(key))
        for key in ("startDate", "endDate")
    )


def describe_schedule(schedule: Optional[dict]) -> str:
    schedule = schedule or {}
    parts = []
    start = parse_instant(schedule.get("startDate"))
    end = parse_instant(schedule.get("endDate"))
    if start:
        parts.append(f"Start: {format_date(start)}")
    if end:
        parts.append(f"End: {format_date(end)}")
    if not parts:
        return "Schedule cleared"
    return f"Schedule updated: {', '.join(parts)}"


def archive_date(job: Job) -> Optional[datetime]:
    """archivedAt, else estimate.sentAt, else movedToDeadEstimateAt, else createdAt"""
    if job.archived_at:
        return job.archived_at
    sent_at = parse_instant((job.estimate or {}).get("sentAt"))
    if sent_at:
        return sent_at
    return job.moved_to_dead_estimate_at or job.created_at


class JobService:
    """Service layer for the job lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()
        self.users = UserRepository()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_job(self, job_id: int) -> Job:
        job = self.repo.get_job_by_id(self.db, job_id)
        if not job:
            raise NotFoundError("Job not found")
        return job

    def get_jobs(
        self,
        stage: Optional[str] = None,
        assigned_to: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> dict:
        if stage and not is_valid_stage(stage):
            raise ValidationError(f"Invalid stage: {stage}")
        page = max(page, 1)
        limit = max(limit, 1)
        jobs, total = self.repo.get_active_jobs(self.db, stage, assigned_to, search, page, limit)
        return {
            "jobs": jobs,
            "totalPages": math.ceil(total / limit),
            "currentPage": page,
            "total": total,
        }

    def get_pipeline_summary(self) -> list[dict]:
        """Count and estimated value per active pipeline stage"""
        totals = self.repo.get_stage_totals(self.db)
        return [
            {
                "stage": stage,
                "label": stage_label(stage),
                "count": totals.get(stage, (0, 0.0))[0],
                "totalValue": totals.get(stage, (0, 0.0))[1],
            }
            for stage in PIPELINE_STAGES
        ]

    def get_archived_jobs(self) -> list[dict]:
        jobs = sorted(
            self.repo.get_archived_jobs(self.db),
            key=lambda j: archive_date(j) or datetime.min,
            reverse=True,
        )
        return group_by_month(jobs, archive_date, "jobs")

    def get_completed_jobs(self) -> list[dict]:
        jobs = self.repo.get_completed_jobs(self.db)
        return group_by_month(jobs, lambda j: j.updated_at or j.created_at, "jobs")

    # ------------------------------------------------------------------
    # Creation and deletion
    # ------------------------------------------------------------------

    def create_job(self, data: JobCreate, actor: User) -> Job:
        """Create a job; stage defaults to DEFAULT_CREATION_STAGE"""
        if not self.repo.get_customer_by_id(self.db, data.customerId):
            raise NotFoundError("Customer not found")
        stage = data.stage or DEFAULT_CREATION_STAGE
        if not is_valid_stage(stage):
            raise ValidationError(f"Invalid stage: {stage}")
        if data.assignedTo is not None and not self.users.get_by_id(self.db, data.assignedTo):
            raise NotFoundError("Assigned user not found")

        logger.info(f"📥 Creating job '{data.title}' for customer {data.customerId} in {stage}")

        now = utcnow()
        payload = data.model_dump(mode="json", exclude_unset=True)
        notes = [
            build_note(n["content"], actor.id, now, n.get("isStageChange"), n.get("isAppointment"))
            for n in payload.get("notes") or []
            if n.get("content")
        ]
        job_data = {
            UPDATABLE_FIELDS[key]: value
            for key, value in payload.items()
            if key in UPDATABLE_FIELDS and key != "stage"
        }
        if job_data.get("color") is None:
            job_data.pop("color", None)

        job = self.repo.create_job(
            self.db,
            customer_id=data.customerId,
            stage=stage,
            notes=notes,
            created_by=actor.id,
            **job_data,
        )

        record_activity(
            self.db,
            "job_created",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            note=f'Job "{job.title}" created in stage {job.stage}',
        )
        return job

    def delete_job(self, job: Job, actor: User) -> None:
        """Log the deletion, then remove the row"""
        job_id, customer_id, title = job.id, job.customer_id, job.title
        record_activity(
            self.db,
            "job_updated",
            job_id=job_id,
            customer_id=customer_id,
            created_by=actor.id,
            note=f'Job "{title}" deleted',
        )
        self.repo.delete_job(self.db, job)
        logger.info(f"🗑️ Job {job_id} deleted by user {actor.id}")

    # ------------------------------------------------------------------
    # Stage state machine
    # ------------------------------------------------------------------

    def move_stage(self, job: Job, to_stage: str, actor: User, note: Optional[str] = None) -> Job:
        """
        Move a job to another stage.

        Any stage may move to any other stage; moving to the current stage is
        rejected. The stage-change note is written together with the stage,
        the stage_change activity afterwards.
        """
        to_stage = getattr(to_stage, "value", to_stage)
        if not is_valid_stage(to_stage):
            raise ValidationError(f"Invalid stage: {to_stage}")

        from_stage = job.stage
        if from_stage == to_stage:
            raise InvalidTransition("Job is already in this stage")

        job.stage = to_stage
        append_note(
            job,
            build_note(
                f"Stage updated: {stage_label(from_stage)} → {stage_label(to_stage)}",
                actor.id,
                utcnow(),
                is_stage_change=True,
            ),
        )
        self.repo.save(self.db, job)
        logger.info(f"🔀 Job {job.id} moved: {from_stage} → {to_stage}")

        record_activity(
            self.db,
            "stage_change",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            from_stage=from_stage,
            to_stage=to_stage,
            note=note or f"Moved from {from_stage} to {to_stage}",
        )
        return job

    # ------------------------------------------------------------------
    # Change-tracked update
    # ------------------------------------------------------------------

    def apply_update(self, job: Job, patch: dict[str, Any], actor: User) -> Job:
        """
        Apply a camelCase patch and record what changed.

        Emits, in order and each best-effort: one job_updated activity with the
        field diff, a stage_change activity if the stage moved, a job_scheduled
        activity if the schedule dates moved, and one note activity per newly
        appended note.
        """
        updates, incoming_notes = self._validate_patch(job, patch)

        old_data = job.to_document()
        now = utcnow()

        new_notes = []
        if incoming_notes is not None:
            new_notes = self._collect_new_notes(old_data["notes"], incoming_notes, actor, now)

        for attr, value in updates.items():
            setattr(job, attr, value)
        if new_notes:
            job.notes = [*old_data["notes"], *new_notes]

        self.repo.save(self.db, job)

        new_data = job.to_document()
        changes = diff_documents(old_data, new_data)
        self._emit_update_activities(job, old_data, new_data, changes, new_notes, actor)
        return job

    def _validate_patch(self, job: Job, patch: dict[str, Any]) -> tuple[dict[str, Any], Optional[list]]:
        if not isinstance(patch, dict):
            raise ValidationError("Update payload must be an object")

        current = job.to_document()
        updates: dict[str, Any] = {}
        incoming_notes = None

        for key, value in patch.items():
            if key == "notes":
                if value is not None and not isinstance(value, list):
                    raise ValidationError("notes must be a list")
                incoming_notes = value
            elif key in IMMUTABLE_FIELDS:
                if key in ("createdAt", "updatedAt"):
                    unchanged = parse_instant(value) == parse_instant(current[key])
                else:
                    unchanged = value == current[key]
                if not unchanged:
                    raise ValidationError(f"{key} cannot be changed")
            elif key in UPDATABLE_FIELDS:
                updates[UPDATABLE_FIELDS[key]] = value
            elif key in JOB_DOCUMENT_FIELDS:
                raise ValidationError(f"{key} cannot be updated directly")
            else:
                raise ValidationError(f"Unknown field: {key}")

        if "stage" in updates and not is_valid_stage(updates["stage"]):
            raise ValidationError(f"Invalid stage: {updates['stage']}")
        if "title" in updates and not (isinstance(updates["title"], str) and updates["title"].strip()):
            raise ValidationError("Title is required")
        if "source" in updates and updates["source"] not in LEAD_SOURCES:
            raise ValidationError(f"Invalid source: {updates['source']}")
        if "color" in updates and not updates["color"]:
            raise ValidationError("color cannot be empty")
        for field in ("value_estimated", "value_contracted"):
            if field in updates:
                value = updates[field]
                if value is None or not isinstance(value, (int, float)) or value < 0:
                    raise ValidationError(f"{field} must be a non-negative number")
        if updates.get("assigned_to") is not None and not self.users.get_by_id(self.db, updates["assigned_to"]):
            raise NotFoundError("Assigned user not found")

        return updates, incoming_notes

    @staticmethod
    def _collect_new_notes(
        existing: list[dict], incoming: list[dict], actor: User, now: datetime
    ) -> list[dict]:
        """
        Notes whose id is missing or unknown are new. Author and timestamp
        sent by the client are ignored. Existing notes are never edited.
        """
        existing_ids = {note.get("id") for note in existing if note.get("id")}
        new_notes = []
        for note in incoming:
            if not isinstance(note, dict):
                continue
            note_id = note.get("id")
            if note_id and note_id in existing_ids:
                continue
            if not note.get("content"):
                continue
            new_notes.append(
                build_note(
                    note["content"],
                    actor.id,
                    now,
                    is_stage_change=note.get("isStageChange") or False,
                    is_appointment=note.get("isAppointment") or False,
                )
            )
        return new_notes

    def _emit_update_activities(
        self,
        job: Job,
        old_data: dict,
        new_data: dict,
        changes: dict,
        new_notes: list[dict],
        actor: User,
    ) -> None:
        scheduled = schedule_dates_changed(old_data.get("schedule"), new_data.get("schedule"))

        generic = {}
        for path, change in changes.items():
            if path in SCHEDULE_DATE_PATHS:
                continue
            if scheduled and (path == "schedule" or path.startswith("schedule.")):
                continue
            generic[path] = change

        if generic:
            record_activity(
                self.db,
                "job_updated",
                job_id=job.id,
                customer_id=job.customer_id,
                created_by=actor.id,
                changes=serialize_changes(generic),
                note=f"Job updated: {', '.join(describe_changes(generic))}",
            )

        old_stage, new_stage = old_data["stage"], new_data["stage"]
        if old_stage != new_stage:
            record_activity(
                self.db,
                "stage_change",
                job_id=job.id,
                customer_id=job.customer_id,
                created_by=actor.id,
                from_stage=old_stage,
                to_stage=new_stage,
                note=f"Stage changed from {old_stage} to {new_stage}",
            )

        if scheduled:
            record_activity(
                self.db,
                "job_scheduled",
                job_id=job.id,
                customer_id=job.customer_id,
                created_by=actor.id,
                note=describe_schedule(new_data.get("schedule")),
            )

        for note in new_notes:
            record_activity(
                self.db,
                "note",
                job_id=job.id,
                customer_id=job.customer_id,
                created_by=actor.id,
                note=note["content"],
            )

        if not (generic or scheduled or new_notes or old_stage != new_stage):
            logger.debug(f"ℹ️ Job {job.id} update changed nothing")

    # ------------------------------------------------------------------
    # Archive operations
    # ------------------------------------------------------------------

    def archive_job(self, job: Job, actor: User) -> Job:
        if job.is_archived:
            raise InvalidTransition("Job is already archived")

        now = utcnow()
        timestamp = format_timestamp(now)
        job.is_archived = True
        job.archived_at = now
        job.archived_by = actor.id
        append_note(job, build_note(f"Job archived on {timestamp}", actor.id, now))
        self.repo.save(self.db, job)

        record_activity(
            self.db,
            "job_archived",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            note=f"Job manually archived on {timestamp}",
        )
        return job

    def unarchive_job(self, job: Job, actor: User) -> Job:
        """Restore a job; jobs parked in APPOINTMENT_SCHEDULED come back as ESTIMATE_SENT"""
        if not job.is_archived:
            raise InvalidTransition("Job is not archived")

        now = utcnow()
        timestamp = format_timestamp(now)
        job.is_archived = False
        job.archived_at = None
        job.archived_by = None
        if job.stage == JobStage.APPOINTMENT_SCHEDULED.value:
            job.stage = JobStage.ESTIMATE_SENT.value
        append_note(job, build_note(f"Job restored from archive on {timestamp}", actor.id, now))
        self.repo.save(self.db, job)

        record_activity(
            self.db,
            "job_updated",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            note=f"Job restored from archive on {timestamp}",
        )
        return job

    def mark_dead_estimate(self, job: Job, actor: User, threshold_days: int = STALE_ESTIMATE_DAYS) -> Job:
        """Manually move a job to the dead-estimate archive"""
        if job.is_dead_estimate:
            raise InvalidTransition("Job is already marked as dead estimate")

        now = utcnow()
        timestamp = format_timestamp(now)
        job.is_dead_estimate = True
        job.moved_to_dead_estimate_at = now
        append_note(
            job,
            build_note(
                f"Job moved to archive on {timestamp} - no response after {threshold_days} days",
                actor.id,
                now,
            ),
        )
        self.repo.save(self.db, job)

        record_activity(
            self.db,
            "job_archived",
            job_id=job.id,
            customer_id=job.customer_id,
            created_by=actor.id,
            note=f"Moved to archive on {timestamp} - no response after {threshold_days} days",
        )
        return job
