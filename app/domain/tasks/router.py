"""Task router - FastAPI endpoints for tasks, change orders and projects"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_actor
from ...database import get_db
from ...models import User
from .schemas import ProjectEntryCreate, TaskCreate, TaskMonthGroup, TaskResponse, TaskUpdate
from .service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    """Dependency injection for TaskService"""
    return TaskService(db)


def to_responses(tasks) -> list[TaskResponse]:
    return [TaskResponse.from_model(task) for task in tasks]


# ============================================================================
# TASK LISTS
# ============================================================================


@router.get("", response_model=list[TaskResponse])
async def get_incomplete_tasks(service: TaskService = Depends(get_task_service)):
    """All open tasks (the todo list), soonest due first"""
    return to_responses(service.get_incomplete_tasks())


@router.get("/completed", response_model=list[TaskMonthGroup])
async def get_completed_tasks(service: TaskService = Depends(get_task_service)):
    """Completed tasks grouped by month of completion"""
    return [
        TaskMonthGroup(**{**group, "tasks": to_responses(group["tasks"])})
        for group in service.get_completed_tasks()
    ]


@router.get("/job/{job_id}", response_model=list[TaskResponse])
async def get_job_tasks(job_id: int, service: TaskService = Depends(get_task_service)):
    return to_responses(service.get_job_tasks(job_id))


@router.get("/my-tasks", response_model=list[TaskResponse])
async def get_my_tasks(
    includeCompleted: bool = Query(False),
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """Tasks assigned to the requesting user"""
    return to_responses(service.get_user_tasks(actor, includeCompleted))


@router.get("/overdue", response_model=list[TaskResponse])
async def get_overdue_tasks(service: TaskService = Depends(get_task_service)):
    return to_responses(service.get_overdue_tasks())


# ============================================================================
# TASK OPERATIONS
# ============================================================================


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """Create a task; a task on a job is also logged on the job's timeline"""
    return TaskResponse.from_model(service.create_task(data, actor))


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(service.update_task(task_id, data))


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: int,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """Mark a task complete"""
    return TaskResponse.from_model(service.complete_task(task_id, actor))


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(task_id)
    return {"message": "Task deleted successfully"}


# ============================================================================
# PROJECTS
# ============================================================================


@router.post("/{task_id}/convert-to-project", response_model=TaskResponse)
async def convert_to_project(
    task_id: int,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(service.convert_to_project(task_id))


@router.get("/{task_id}/project", response_model=TaskResponse)
async def get_project(task_id: int, service: TaskService = Depends(get_task_service)):
    """Project details with its notes and updates"""
    return TaskResponse.from_model(service.get_project(task_id))


@router.post("/{task_id}/notes", response_model=TaskResponse)
async def add_project_note(
    task_id: int,
    data: ProjectEntryCreate,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(service.add_project_note(task_id, data.content, actor))


@router.post("/{task_id}/updates", response_model=TaskResponse)
async def add_project_update(
    task_id: int,
    data: ProjectEntryCreate,
    actor: User = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(service.add_project_update(task_id, data.content, actor))
