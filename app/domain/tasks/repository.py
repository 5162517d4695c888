"""Task repository - Database operations for tasks and projects"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Task


def _with_links(query):
    return query.options(
        joinedload(Task.job),
        joinedload(Task.customer),
        joinedload(Task.assignee),
        joinedload(Task.completer),
        joinedload(Task.creator),
    )


class TaskRepository:
    """Repository for task database operations"""

    @staticmethod
    def get_task_by_id(db: Session, task_id: int) -> Optional[Task]:
        return _with_links(db.query(Task)).filter(Task.id == task_id).first()

    @staticmethod
    def create_task(db: Session, **task_data) -> Task:
        task = Task(**task_data)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def save(db: Session, task: Task) -> Task:
        try:
            db.add(task)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(task)
        return task

    @staticmethod
    def delete_task(db: Session, task: Task) -> None:
        db.delete(task)
        db.commit()

    @staticmethod
    def get_incomplete_tasks(db: Session) -> list[Task]:
        """Open tasks, soonest due first; undated tasks last"""
        return (
            _with_links(db.query(Task))
            .filter(Task.completed_at.is_(None))
            .order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.id.asc())
            .all()
        )

    @staticmethod
    def get_completed_tasks(db: Session) -> list[Task]:
        return (
            _with_links(db.query(Task))
            .filter(Task.completed_at.is_not(None))
            .order_by(Task.completed_at.desc(), Task.id.desc())
            .all()
        )

    @staticmethod
    def get_tasks_for_job(db: Session, job_id: int) -> list[Task]:
        return (
            _with_links(db.query(Task))
            .filter(Task.job_id == job_id)
            .order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.id.asc())
            .all()
        )

    @staticmethod
    def get_tasks_for_user(db: Session, user_id: int, include_completed: bool = False) -> list[Task]:
        query = _with_links(db.query(Task)).filter(Task.assigned_to == user_id)
        if not include_completed:
            query = query.filter(Task.completed_at.is_(None))
        return query.order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.id.asc()).all()

    @staticmethod
    def get_overdue_tasks(db: Session, now: datetime) -> list[Task]:
        return (
            _with_links(db.query(Task))
            .filter(Task.completed_at.is_(None), Task.due_date < now)
            .order_by(Task.due_date.asc(), Task.id.asc())
            .all()
        )
