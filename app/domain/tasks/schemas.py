"""Task domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import Task, User

TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskType = Literal[
    "follow_up",
    "send_estimate",
    "review_design",
    "collect_deposit",
    "schedule_install",
    "site_visit",
    "quality_check",
    "collect_payment",
    "other",
]


class TaskCreate(BaseModel):
    """
    Schema for creating a task. With a jobId the customer is taken from the
    job; without one the task is standalone.
    """

    title: str
    description: Optional[str] = None
    jobId: Optional[int] = None
    customerId: Optional[int] = None
    dueDate: Optional[datetime] = None
    priority: TaskPriority = "medium"
    type: TaskType = "follow_up"
    assignedTo: Optional[int] = None
    isProject: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()

    @field_validator("description")
    @classmethod
    def strip_description(cls, v):
        return v.strip() if v else v


class TaskUpdate(BaseModel):
    """Schema for updating a task; completion goes through /complete"""

    title: Optional[str] = None
    description: Optional[str] = None
    dueDate: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    type: Optional[TaskType] = None
    assignedTo: Optional[int] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip() if v else v


class ProjectEntryCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if not v or not v.strip():
            raise ValueError("Content is required")
        return v.strip()


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    @classmethod
    def from_model(cls, user: Optional[User]) -> Optional["UserSummary"]:
        if user is None:
            return None
        return cls(id=user.id, name=user.name, email=user.email)


class TaskResponse(BaseModel):
    """Schema for task response"""

    id: int
    title: str
    description: Optional[str] = None
    jobId: Optional[int] = None
    job: Optional[dict[str, Any]] = None
    customerId: Optional[int] = None
    customer: Optional[dict[str, Any]] = None
    dueDate: Optional[datetime] = None
    priority: str
    type: str
    assignedTo: Optional[UserSummary] = None
    completedAt: Optional[datetime] = None
    completedBy: Optional[UserSummary] = None
    createdBy: Optional[UserSummary] = None
    isProject: bool
    notes: list[dict[str, Any]]
    updates: list[dict[str, Any]]
    isCompleted: bool
    isOverdue: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, task: Task) -> "TaskResponse":
        job = None
        if task.job is not None:
            job = {"id": task.job.id, "title": task.job.title, "stage": task.job.stage}
        customer = None
        if task.customer is not None:
            customer = {"id": task.customer.id, "name": task.customer.name}
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            jobId=task.job_id,
            job=job,
            customerId=task.customer_id,
            customer=customer,
            dueDate=task.due_date,
            priority=task.priority,
            type=task.type,
            assignedTo=UserSummary.from_model(task.assignee),
            completedAt=task.completed_at,
            completedBy=UserSummary.from_model(task.completer),
            createdBy=UserSummary.from_model(task.creator),
            isProject=bool(task.is_project),
            notes=task.notes or [],
            updates=task.updates or [],
            isCompleted=task.is_completed,
            isOverdue=task.is_overdue,
            createdAt=task.created_at,
            updatedAt=task.updated_at,
        )


class TaskMonthGroup(BaseModel):
    year: int
    month: int
    monthName: str
    tasks: list[TaskResponse]
