"""Activity repository - Insert-only audit log storage"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Activity
from ...shared.exceptions import AuditEmissionFailure

logger = logging.getLogger(__name__)


class ActivityRepository:
    """Repository for activity database operations"""

    @staticmethod
    def create(db: Session, **fields) -> Activity:
        """
        Insert one activity in its own commit.

        Raises AuditEmissionFailure (after rolling the session back) when the
        row cannot be written; anything committed before is unaffected.
        """
        try:
            activity = Activity(**fields)
            db.add(activity)
            db.commit()
            db.refresh(activity)
            return activity
        except (SQLAlchemyError, ValueError, TypeError) as e:
            db.rollback()
            raise AuditEmissionFailure(
                f"Could not write {fields.get('type')} activity for job {fields.get('job_id')}: {e}"
            ) from e

    @staticmethod
    def get_for_job(db: Session, job_id: int) -> list[Activity]:
        return (
            db.query(Activity)
            .filter(Activity.job_id == job_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .all()
        )

    @staticmethod
    def get_for_customer(db: Session, customer_id: int) -> list[Activity]:
        return (
            db.query(Activity)
            .filter(Activity.customer_id == customer_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .all()
        )

    @staticmethod
    def get_recent(db: Session, limit: Optional[int] = None) -> list[Activity]:
        query = db.query(Activity).order_by(Activity.created_at.desc(), Activity.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_by_date_range(
        db: Session,
        start: datetime,
        end: datetime,
        types: Optional[list[str]] = None,
    ) -> list[Activity]:
        query = db.query(Activity).filter(Activity.created_at >= start, Activity.created_at <= end)
        if types:
            query = query.filter(Activity.type.in_(types))
        return query.order_by(Activity.created_at.desc(), Activity.id.desc()).all()
