"""Activity router - FastAPI endpoints for the audit trail"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, resolve_actor
from ...database import get_db
from ...models import User
from ..jobs.service import JobService
from .schemas import ActivityResponse, ManualActivityCreate
from .service import ActivityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activities", tags=["Activities"])


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    """Dependency injection for ActivityService"""
    return ActivityService(db)


@router.get("/recent", response_model=list[ActivityResponse])
async def get_recent_activities(
    limit: Optional[int] = Query(None, ge=1),
    service: ActivityService = Depends(get_activity_service),
):
    """Most recent activities across all jobs and customers"""
    return [ActivityResponse.from_model(a) for a in service.get_recent_activities(limit)]


@router.get("/date-range", response_model=list[ActivityResponse])
async def get_activities_by_date_range(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    types: Optional[str] = Query(None, description="Comma-separated activity types"),
    service: ActivityService = Depends(get_activity_service),
):
    """Activities between two dates (end date inclusive)"""
    activities = service.get_activities_by_date_range(startDate, endDate, types)
    return [ActivityResponse.from_model(a) for a in activities]


@router.get("/job/{job_id}", response_model=list[ActivityResponse])
async def get_job_activities(job_id: int, service: ActivityService = Depends(get_activity_service)):
    return [ActivityResponse.from_model(a) for a in service.get_job_activities(job_id)]


@router.get("/customer/{customer_id}", response_model=list[ActivityResponse])
async def get_customer_activities(
    customer_id: int, service: ActivityService = Depends(get_activity_service)
):
    return [ActivityResponse.from_model(a) for a in service.get_customer_activities(customer_id)]


@router.post("/job/{job_id}", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_job_activity(
    job_id: int,
    data: ManualActivityCreate,
    current_user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Log a note, call, email, sms or meeting against a job"""
    job = JobService(db).get_job(job_id)
    actor = resolve_actor(db, current_user, job)
    activity = ActivityService(db).log_manual(job, data, actor)
    return ActivityResponse.from_model(activity)
