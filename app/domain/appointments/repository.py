"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment

# Statuses shown on the history page
CLOSED_STATUSES = ("completed", "cancelled", "no_show")


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.customer), joinedload(Appointment.job))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        try:
            db.add(appointment)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()

    @staticmethod
    def get_appointments(
        db: Session,
        status: str,
        day_start: Optional[datetime] = None,
        day_end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Appointment], int]:
        """Appointments in one status, earliest first"""
        query = db.query(Appointment).filter(Appointment.status == status)
        if day_start is not None:
            query = query.filter(Appointment.date >= day_start, Appointment.date <= day_end)

        total = query.count()
        appointments = (
            query.options(joinedload(Appointment.customer), joinedload(Appointment.job))
            .order_by(Appointment.date.asc(), Appointment.time.asc(), Appointment.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def get_closed_appointments(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Appointment], int]:
        """Completed, cancelled and no-show appointments, most recent first"""
        query = db.query(Appointment).filter(Appointment.status.in_(CLOSED_STATUSES))
        if start is not None:
            query = query.filter(Appointment.date >= start)
        if end is not None:
            query = query.filter(Appointment.date <= end)

        total = query.count()
        appointments = (
            query.options(joinedload(Appointment.customer), joinedload(Appointment.job))
            .order_by(Appointment.date.desc(), Appointment.completed_at.desc(), Appointment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total
