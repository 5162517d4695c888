"""Job router - FastAPI endpoints for the job pipeline"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_actor, get_current_user, resolve_actor
from ...database import get_db
from ...models import User
from ...services.estimate_sweeper import preview_sweep, sweep
from .schemas import (
    JobCreate,
    JobListResponse,
    JobResponse,
    JobUpdate,
    MonthGroup,
    MoveStageRequest,
    StageSummary,
)
from .service import JobService
from .stages import PIPELINE_STAGES, STAGE_PHASES, stage_label

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    """Dependency injection for JobService"""
    return JobService(db)


def to_month_groups(groups: list[dict]) -> list[MonthGroup]:
    return [
        MonthGroup(**{**group, "jobs": [JobResponse.from_model(job) for job in group["jobs"]]})
        for group in groups
    ]


# ============================================================================
# PIPELINE VIEWS
# ============================================================================


@router.get("", response_model=JobListResponse)
async def get_jobs(
    stage: Optional[str] = Query(None),
    assignedTo: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    service: JobService = Depends(get_job_service),
):
    """Active pipeline jobs (not archived, not dead estimates)"""
    result = service.get_jobs(stage, assignedTo, search, page, limit)
    return JobListResponse(
        jobs=[JobResponse.from_model(job) for job in result["jobs"]],
        totalPages=result["totalPages"],
        currentPage=result["currentPage"],
        total=result["total"],
    )


@router.get("/stages")
async def get_stages():
    """Stage catalogue: order, labels and phase groupings for the board"""
    return {
        "stages": [{"stage": stage, "label": stage_label(stage)} for stage in PIPELINE_STAGES],
        "phases": STAGE_PHASES,
    }


@router.get("/pipeline/summary", response_model=list[StageSummary])
async def get_pipeline_summary(service: JobService = Depends(get_job_service)):
    """Job count and estimated value per stage"""
    return [StageSummary(**row) for row in service.get_pipeline_summary()]


@router.get("/archive", response_model=list[MonthGroup])
async def get_archived_jobs(service: JobService = Depends(get_job_service)):
    """Archived and dead-estimate jobs grouped by month"""
    return to_month_groups(service.get_archived_jobs())


@router.get("/dead-estimates", response_model=list[MonthGroup])
async def get_dead_estimates(service: JobService = Depends(get_job_service)):
    """Alias of /jobs/archive kept for older clients"""
    return to_month_groups(service.get_archived_jobs())


@router.get("/completed", response_model=list[MonthGroup])
async def get_completed_jobs(service: JobService = Depends(get_job_service)):
    """FINAL_PAYMENT_CLOSED jobs grouped by month of last update"""
    return to_month_groups(service.get_completed_jobs())


# ============================================================================
# ESTIMATE SWEEP
# ============================================================================


@router.get("/dead-estimates/debug")
async def debug_dead_estimates(db: Session = Depends(get_db)):
    """Show which jobs the next sweep would move or archive"""
    return preview_sweep(db)


@router.post("/dead-estimates/auto-move")
async def auto_move_dead_estimates(
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Manually trigger the estimate sweep
    (In production this runs hourly in the arq worker)
    """
    logger.info(f"🧹 Estimate sweep triggered manually by user {actor.id}")
    report = sweep(db)
    return report.to_dict()


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    data: JobCreate,
    actor: User = Depends(get_actor),
    service: JobService = Depends(get_job_service),
):
    """Create a new job for an existing customer"""
    job = service.create_job(data, actor)
    return JobResponse.from_model(service.get_job(job.id))


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: int, service: JobService = Depends(get_job_service)):
    """Get a single job"""
    return JobResponse.from_model(service.get_job(job_id))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    data: JobUpdate,
    current_user: Optional[User] = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Update job fields; every change is recorded in the activity log"""
    job = service.get_job(job_id)
    actor = resolve_actor(service.db, current_user, job)
    job = service.apply_update(job, data.to_patch(), actor)
    return JobResponse.from_model(job)


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Delete a job"""
    job = service.get_job(job_id)
    actor = resolve_actor(service.db, current_user, job)
    service.delete_job(job, actor)
    return {"message": "Job deleted successfully"}


# ============================================================================
# STAGE AND ARCHIVE TRANSITIONS
# ============================================================================


@router.post("/{job_id}/move-stage", response_model=JobResponse)
async def move_job_stage(
    job_id: int,
    data: MoveStageRequest,
    current_user: Optional[User] = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Move a job to another pipeline stage"""
    job = service.get_job(job_id)
    actor = resolve_actor(service.db, current_user, job)
    job = service.move_stage(job, data.toStage, actor, data.note)
    return JobResponse.from_model(job)


@router.post("/{job_id}/archive", response_model=JobResponse)
async def archive_job(
    job_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Manually archive a job"""
    job = service.get_job(job_id)
    actor = resolve_actor(service.db, current_user, job)
    return JobResponse.from_model(service.archive_job(job, actor))


@router.post("/{job_id}/unarchive", response_model=JobResponse)
async def unarchive_job(
    job_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Restore an archived job to the pipeline"""
    job = service.get_job(job_id)
    actor = resolve_actor(service.db, current_user, job)
    return JobResponse.from_model(service.unarchive_job(job, actor))


@router.post("/{job_id}/move-to-dead-estimates", response_model=JobResponse)
async def move_to_dead_estimates(
    job_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Manually flag a job as a dead estimate"""
    job = service.get_job(job_id)
    actor = resolve_actor(service.db, current_user, job)
    return JobResponse.from_model(service.mark_dead_estimate(job, actor))
