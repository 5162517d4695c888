"""Activity service - Best-effort audit emission and activity queries"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Activity, Job, User
from ...shared.dates import parse_instant
from ...shared.exceptions import AuditEmissionFailure, ValidationError
from .repository import ActivityRepository
from .schemas import ManualActivityCreate

logger = logging.getLogger(__name__)


def record_activity(
    db: Session,
    activity_type: str,
    *,
    customer_id: int,
    created_by: int,
    note: str,
    job_id: Optional[int] = None,
    **extra,
) -> Optional[Activity]:
    """
    Write one activity after the primary entity write has committed.

    Failures are logged and swallowed: the audit trail is best-effort and
    never fails or rolls back the caller's operation.
    """
    try:
        return ActivityRepository.create(
            db,
            type=activity_type,
            job_id=job_id,
            customer_id=customer_id,
            created_by=created_by,
            note=note,
            **extra,
        )
    except AuditEmissionFailure as e:
        logger.error(f"❌ Activity log failed ({activity_type}, job {job_id}): {e.message}")
        return None


class ActivityService:
    """Service layer for activity queries and manual entries"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ActivityRepository()

    def get_job_activities(self, job_id: int) -> list[Activity]:
        return self.repo.get_for_job(self.db, job_id)

    def get_customer_activities(self, customer_id: int) -> list[Activity]:
        return self.repo.get_for_customer(self.db, customer_id)

    def get_recent_activities(self, limit: Optional[int] = None) -> list[Activity]:
        return self.repo.get_recent(self.db, limit)

    def get_activities_by_date_range(
        self,
        start_date: Optional[str],
        end_date: Optional[str],
        types: Optional[str] = None,
    ) -> list[Activity]:
        """Activities between two dates, the end date included in full"""
        if not start_date or not end_date:
            raise ValidationError("startDate and endDate are required")

        start = parse_instant(start_date)
        end = parse_instant(end_date)
        if start is None or end is None:
            raise ValidationError("startDate and endDate must be ISO-8601 dates")

        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)
        type_list = [t.strip() for t in types.split(",") if t.strip()] if types else None
        return self.repo.get_by_date_range(self.db, start, end, type_list)

    def log_manual(self, job: Job, data: ManualActivityCreate, actor: User) -> Activity:
        """Record a note/call/email/sms/meeting against a job; failures surface here"""
        logger.info(f"📝 Logging manual {data.type} on job {job.id} by user {actor.id}")
        return self.repo.create(
            self.db,
            type=data.type,
            job_id=job.id,
            customer_id=job.customer_id,
            note=data.note,
            subject=data.subject,
            duration=data.duration,
            location=data.location,
            created_by=actor.id,
        )
