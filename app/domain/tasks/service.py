"""
Task service - To-dos, change orders and projects.

A task created against a job also lands on the job's timeline (a note plus
a task_created activity); completing it logs task_completed. Standalone
tasks have no customer and stay out of the activity log.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import Task, User
from ...shared.dates import group_by_month, to_iso, utcnow
from ...shared.exceptions import InvalidTransition, NotFoundError
from ..activities.service import record_activity
from ..jobs.repository import JobRepository
from ..jobs.service import append_note, build_note
from ..users.repository import UserRepository
from .repository import TaskRepository
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

# Wire name -> column
TASK_FIELDS = {
    "title": "title",
    "description": "description",
    "dueDate": "due_date",
    "priority": "priority",
    "type": "type",
    "assignedTo": "assigned_to",
}


def task_summary(task: Task) -> str:
    """'<title> - <description>' or just the title"""
    if task.description:
        return f"{task.title} - {task.description}"
    return task.title


def build_entry(content: str, created_by: int) -> dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "content": content,
        "createdBy": created_by,
        "createdAt": to_iso(utcnow()),
    }


class TaskService:
    """Service layer for tasks and projects"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TaskRepository()
        self.users = UserRepository()

    def get_task(self, task_id: int) -> Task:
        task = self.repo.get_task_by_id(self.db, task_id)
        if not task:
            raise NotFoundError("Task not found")
        return task

    def get_project(self, task_id: int) -> Task:
        task = self.repo.get_task_by_id(self.db, task_id)
        if not task:
            raise NotFoundError("Project not found")
        if not task.is_project:
            raise InvalidTransition("This is not a project")
        return task

    def get_incomplete_tasks(self) -> list[Task]:
        return self.repo.get_incomplete_tasks(self.db)

    def get_completed_tasks(self) -> list[dict]:
        """Completed tasks grouped by month of completion"""
        return group_by_month(self.repo.get_completed_tasks(self.db), lambda t: t.completed_at, "tasks")

    def get_job_tasks(self, job_id: int) -> list[Task]:
        return self.repo.get_tasks_for_job(self.db, job_id)

    def get_user_tasks(self, user: User, include_completed: bool = False) -> list[Task]:
        return self.repo.get_tasks_for_user(self.db, user.id, include_completed)

    def get_overdue_tasks(self) -> list[Task]:
        return self.repo.get_overdue_tasks(self.db, utcnow())

    def _check_assignee(self, user_id: Optional[int]) -> None:
        if user_id is not None and not self.users.get_by_id(self.db, user_id):
            raise NotFoundError("Assigned user not found")

    def create_task(self, data: TaskCreate, actor: User) -> Task:
        """Create a task; assignee defaults to the creator"""
        job = None
        customer_id = data.customerId
        if data.jobId is not None:
            job = JobRepository.get_job_by_id(self.db, data.jobId)
            if not job:
                raise NotFoundError("Job not found")
            customer_id = job.customer_id
        elif customer_id is not None and not JobRepository.get_customer_by_id(self.db, customer_id):
            raise NotFoundError("Customer not found")
        self._check_assignee(data.assignedTo)

        logger.info(f"📥 Creating task '{data.title}' (job {data.jobId}) for user_id: {actor.id}")

        notes = []
        if data.isProject and data.description:
            notes.append(build_entry(data.description, actor.id))

        task = self.repo.create_task(
            self.db,
            job_id=data.jobId,
            customer_id=customer_id,
            title=data.title,
            description=data.description,
            due_date=data.dueDate,
            priority=data.priority,
            type=data.type,
            assigned_to=data.assignedTo or actor.id,
            is_project=data.isProject,
            notes=notes,
            updates=[],
            created_by=actor.id,
        )

        if job is not None:
            summary = task_summary(task)
            append_note(job, build_note(summary, actor.id, utcnow()))
            JobRepository.save(self.db, job)
            record_activity(
                self.db,
                "task_created",
                job_id=job.id,
                customer_id=job.customer_id,
                created_by=actor.id,
                note=f"Change order/task added: {summary}",
            )

        return self.get_task(task.id)

    def update_task(self, task_id: int, data: TaskUpdate) -> Task:
        task = self.get_task(task_id)
        payload = data.model_dump(exclude_unset=True)
        if "assignedTo" in payload:
            self._check_assignee(payload["assignedTo"])
        for key, value in payload.items():
            if key in ("title", "priority", "type") and value is None:
                continue
            setattr(task, TASK_FIELDS[key], value)
        self.repo.save(self.db, task)
        logger.info(f"✅ Task {task.id} updated")
        return self.get_task(task.id)

    def complete_task(self, task_id: int, actor: User) -> Task:
        task = self.get_task(task_id)
        if task.completed_at:
            raise InvalidTransition("Task already completed")

        completed_by = actor.id
        task.completed_at = utcnow()
        task.completed_by = completed_by
        self.repo.save(self.db, task)
        logger.info(f"✅ Task {task.id} completed by user {completed_by}")

        if task.job_id and task.customer_id:
            record_activity(
                self.db,
                "task_completed",
                job_id=task.job_id,
                customer_id=task.customer_id,
                created_by=completed_by,
                note=f"Change order/task completed: {task_summary(task)}",
            )
        return self.get_task(task.id)

    def delete_task(self, task_id: int) -> None:
        task = self.get_task(task_id)
        self.repo.delete_task(self.db, task)
        logger.info(f"🗑️ Task {task_id} deleted")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def convert_to_project(self, task_id: int) -> Task:
        """Turn a task into a project; the description becomes its first note"""
        task = self.get_task(task_id)
        if task.is_project:
            raise InvalidTransition("Task is already a project")

        task.is_project = True
        if task.description and task.description.strip():
            task.notes = [*(task.notes or []), build_entry(task.description, task.created_by)]
        task.updates = task.updates or []
        self.repo.save(self.db, task)
        return self.get_task(task.id)

    def add_project_note(self, task_id: int, content: str, actor: User) -> Task:
        task = self.get_project(task_id)
        task.notes = [*(task.notes or []), build_entry(content, actor.id)]
        self.repo.save(self.db, task)
        return self.get_task(task.id)

    def add_project_update(self, task_id: int, content: str, actor: User) -> Task:
        task = self.get_project(task_id)
        task.updates = [*(task.updates or []), build_entry(content, actor.id)]
        self.repo.save(self.db, task)
        return self.get_task(task.id)
