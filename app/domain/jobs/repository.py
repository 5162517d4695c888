"""Job repository - Database operations for jobs"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, joinedload

from ...models import Customer, Job
from ...shared.exceptions import SystemicFailure
from .stages import JobStage

logger = logging.getLogger(__name__)


def active_pipeline_filter():
    """Excludes archived and dead-estimate jobs (false, null or missing)"""
    return and_(Job.is_archived.is_not(True), Job.is_dead_estimate.is_not(True))


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_job_by_id(db: Session, job_id: int) -> Optional[Job]:
        return (
            db.query(Job)
            .options(joinedload(Job.customer))
            .filter(Job.id == job_id)
            .first()
        )

    @staticmethod
    def get_customer_by_id(db: Session, customer_id: int) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def create_job(db: Session, **job_data) -> Job:
        job = Job(**job_data)
        db.add(job)
        JobRepository.save(db, job)
        return job

    @staticmethod
    def save(db: Session, job: Job) -> Job:
        """Commit the job as one atomic row write"""
        try:
            db.add(job)
            db.commit()
        except OperationalError as e:
            db.rollback()
            logger.error(f"❌ Database unavailable while saving job {job.id}: {e}")
            raise SystemicFailure("Database connection unavailable") from e
        except Exception:
            db.rollback()
            raise
        db.refresh(job)
        return job

    @staticmethod
    def delete_job(db: Session, job: Job) -> None:
        db.delete(job)
        db.commit()

    @staticmethod
    def get_active_jobs(
        db: Session,
        stage: Optional[str] = None,
        assigned_to: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Job], int]:
        """Active pipeline jobs, newest first, with the total count for paging"""
        query = db.query(Job).filter(active_pipeline_filter())

        if stage:
            query = query.filter(Job.stage == stage)
        if assigned_to:
            query = query.filter(Job.assigned_to == assigned_to)
        if search:
            query = query.filter(Job.title.ilike(f"%{search}%"))

        total = query.count()
        jobs = (
            query.options(joinedload(Job.customer))
            .order_by(Job.created_at.desc(), Job.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return jobs, total

    @staticmethod
    def get_stage_totals(db: Session) -> dict[str, tuple[int, float]]:
        """{stage: (count, sum of valueEstimated)} over the active pipeline"""
        rows = (
            db.query(Job.stage, func.count(Job.id), func.coalesce(func.sum(Job.value_estimated), 0))
            .filter(active_pipeline_filter())
            .group_by(Job.stage)
            .all()
        )
        return {stage: (count, float(total or 0)) for stage, count, total in rows}

    @staticmethod
    def get_archived_jobs(db: Session) -> list[Job]:
        """Dead estimates and manually archived jobs"""
        return (
            db.query(Job)
            .options(joinedload(Job.customer))
            .filter(or_(Job.is_dead_estimate.is_(True), Job.is_archived.is_(True)))
            .all()
        )

    @staticmethod
    def get_completed_jobs(db: Session) -> list[Job]:
        return (
            db.query(Job)
            .options(joinedload(Job.customer))
            .filter(Job.stage == JobStage.FINAL_PAYMENT_CLOSED.value, active_pipeline_filter())
            .order_by(Job.updated_at.desc(), Job.created_at.desc())
            .all()
        )

    @staticmethod
    def get_jobs_for_customer(db: Session, customer_id: int) -> list[Job]:
        return (
            db.query(Job)
            .filter(Job.customer_id == customer_id)
            .order_by(Job.created_at.desc(), Job.id.desc())
            .all()
        )

    # Sweeper candidates
    @staticmethod
    def find_stale_in_progress(db: Session, cutoff: datetime) -> list[Job]:
        """Active ESTIMATE_IN_PROGRESS jobs untouched since the cutoff"""
        try:
            return (
                db.query(Job)
                .filter(
                    Job.stage == JobStage.ESTIMATE_IN_PROGRESS.value,
                    or_(
                        Job.updated_at <= cutoff,
                        and_(Job.updated_at.is_(None), Job.created_at <= cutoff),
                    ),
                    active_pipeline_filter(),
                )
                .order_by(Job.id.asc())
                .all()
            )
        except OperationalError as e:
            raise SystemicFailure(f"Database connection unavailable: {e}") from e

    @staticmethod
    def find_active_sent_estimates(db: Session) -> list[Job]:
        """
        Active ESTIMATE_SENT jobs. The estimate.sentAt cutoff is applied by
        the caller because it lives inside the estimate sub-document.
        """
        try:
            return (
                db.query(Job)
                .filter(Job.stage == JobStage.ESTIMATE_SENT.value, active_pipeline_filter())
                .order_by(Job.id.asc())
                .all()
            )
        except OperationalError as e:
            raise SystemicFailure(f"Database connection unavailable: {e}") from e

    @staticmethod
    def find_active_in_stage(db: Session, stage: str) -> list[Job]:
        return (
            db.query(Job)
            .filter(Job.stage == stage, active_pipeline_filter())
            .order_by(Job.id.asc())
            .all()
        )
