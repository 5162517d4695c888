"""
Appointment service - Site visits and consultations.

Booking an appointment for a job puts an appointment note on the job's
timeline. Appointments with a known customer are logged as meeting
activities when booked and when completed.
"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...models import APPOINTMENT_STATUSES, Appointment, User
from ...shared.dates import format_short_date, parse_instant, to_naive_utc, utcnow
from ...shared.exceptions import InvalidTransition, NotFoundError, ValidationError
from ..activities.service import record_activity
from ..jobs.repository import JobRepository
from ..jobs.service import append_note, build_note
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

# Wire name -> column
APPOINTMENT_FIELDS = {
    "title": "title",
    "date": "date",
    "time": "time",
    "reason": "reason",
    "location": "location",
    "notes": "notes",
    "status": "status",
    "customerName": "customer_name",
    "customerPhone": "customer_phone",
    "customerEmail": "customer_email",
}

# Columns that cannot be cleared
REQUIRED_FIELDS = ("title", "date", "time", "status")


def _paged(appointments: list[Appointment], total: int, page: int, limit: int) -> dict:
    return {
        "appointments": appointments,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "total": total,
    }


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def get_appointments(
        self,
        status: Optional[str] = None,
        date: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> dict:
        """Appointments in one status (scheduled by default), optionally on one day"""
        status = status or "scheduled"
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        day_start = day_end = None
        if date:
            day = parse_instant(date)
            if day is None:
                raise ValidationError("date must be an ISO-8601 date")
            day_start = day.replace(hour=0, minute=0, second=0, microsecond=0)
            day_end = day.replace(hour=23, minute=59, second=59, microsecond=999999)

        page = max(page, 1)
        limit = max(limit, 1)
        appointments, total = self.repo.get_appointments(self.db, status, day_start, day_end, page, limit)
        return _paged(appointments, total, page, limit)

    def get_closed_appointments(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> dict:
        start = parse_instant(start_date)
        end = parse_instant(end_date)
        if (start_date and start is None) or (end_date and end is None):
            raise ValidationError("startDate and endDate must be ISO-8601 dates")

        page = max(page, 1)
        limit = max(limit, 1)
        appointments, total = self.repo.get_closed_appointments(self.db, start, end, page, limit)
        return _paged(appointments, total, page, limit)

    def create_appointment(self, data: AppointmentCreate, actor: User) -> Appointment:
        job = None
        customer_id = data.customerId
        if data.jobId is not None:
            job = JobRepository.get_job_by_id(self.db, data.jobId)
            if not job:
                raise NotFoundError("Job not found")
            customer_id = customer_id or job.customer_id
        if customer_id is not None and not JobRepository.get_customer_by_id(self.db, customer_id):
            raise NotFoundError("Customer not found")

        logger.info(f"📅 Booking appointment '{data.title}' on {data.date.date()} for user_id: {actor.id}")

        appointment = self.repo.create_appointment(
            self.db,
            title=data.title,
            date=to_naive_utc(data.date),
            time=data.time,
            reason=data.reason,
            location=data.location,
            notes=data.notes,
            status="scheduled",
            job_id=data.jobId,
            customer_id=customer_id,
            customer_name=data.customerName,
            customer_phone=data.customerPhone,
            customer_email=data.customerEmail,
            created_by=actor.id,
        )
        when = f"{format_short_date(appointment.date)} at {appointment.time}"

        if job is not None:
            append_note(
                job,
                build_note(
                    f"Appointment scheduled: {appointment.title} on {when}",
                    actor.id,
                    utcnow(),
                    is_appointment=True,
                ),
            )
            JobRepository.save(self.db, job)

        if appointment.customer_id:
            record_activity(
                self.db,
                "meeting",
                job_id=appointment.job_id,
                customer_id=appointment.customer_id,
                created_by=actor.id,
                location=appointment.location,
                note=f"Appointment scheduled: {appointment.title} on {when}",
            )

        return self.get_appointment(appointment.id)

    def update_appointment(self, appointment_id: int, data: AppointmentUpdate) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        payload = data.model_dump(exclude_unset=True)
        for key, value in payload.items():
            column = APPOINTMENT_FIELDS[key]
            if column in REQUIRED_FIELDS and value is None:
                continue
            if column == "date":
                value = to_naive_utc(value)
            setattr(appointment, column, value)
        self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} updated")
        return self.get_appointment(appointment.id)

    def complete_appointment(self, appointment_id: int, actor: User) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.status == "completed":
            raise InvalidTransition("Appointment is already completed")

        appointment.status = "completed"
        appointment.completed_at = utcnow()
        self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} completed")

        if appointment.customer_id:
            record_activity(
                self.db,
                "meeting",
                job_id=appointment.job_id,
                customer_id=appointment.customer_id,
                created_by=actor.id,
                location=appointment.location,
                note=f"Appointment completed: {appointment.title}",
            )
        return self.get_appointment(appointment.id)

    def cancel_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.status == "cancelled":
            raise InvalidTransition("Appointment is already cancelled")

        appointment.status = "cancelled"
        appointment.cancelled_at = utcnow()
        self.repo.save(self.db, appointment)
        logger.info(f"🚫 Appointment {appointment.id} cancelled")
        return self.get_appointment(appointment.id)

    def delete_appointment(self, appointment_id: int) -> None:
        appointment = self.get_appointment(appointment_id)
        self.repo.delete_appointment(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted")
