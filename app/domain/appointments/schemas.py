"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import Appointment
from ...shared.validators import validate_email

AppointmentStatus = Literal["scheduled", "completed", "cancelled", "no_show"]


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment"""

    title: str
    date: datetime
    time: str
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    jobId: Optional[int] = None
    customerId: Optional[int] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None

    @field_validator("title", "time")
    @classmethod
    def validate_required(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} is required")
        return v.strip()

    @field_validator("customerEmail")
    @classmethod
    def validate_customer_email(cls, v):
        return validate_email(v)


class AppointmentUpdate(BaseModel):
    """Schema for updating an appointment; only fields sent are applied"""

    title: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[str] = None
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None

    @field_validator("title", "time")
    @classmethod
    def validate_not_blank(cls, v, info):
        if v is not None and not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip() if v else v

    @field_validator("customerEmail")
    @classmethod
    def validate_customer_email(cls, v):
        return validate_email(v)


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    title: str
    date: datetime
    time: str
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: str
    jobId: Optional[int] = None
    job: Optional[dict[str, Any]] = None
    customerId: Optional[int] = None
    customer: Optional[dict[str, Any]] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None
    completedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    createdBy: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        job = None
        if appointment.job is not None:
            job = {"id": appointment.job.id, "title": appointment.job.title, "stage": appointment.job.stage}
        customer = None
        if appointment.customer is not None:
            customer = {
                "id": appointment.customer.id,
                "name": appointment.customer.name,
                "primaryPhone": appointment.customer.primary_phone,
                "primaryEmail": appointment.customer.primary_email,
            }
        return cls(
            id=appointment.id,
            title=appointment.title,
            date=appointment.date,
            time=appointment.time,
            reason=appointment.reason,
            location=appointment.location,
            notes=appointment.notes,
            status=appointment.status,
            jobId=appointment.job_id,
            job=job,
            customerId=appointment.customer_id,
            customer=customer,
            customerName=appointment.customer_name,
            customerPhone=appointment.customer_phone,
            customerEmail=appointment.customer_email,
            completedAt=appointment.completed_at,
            cancelledAt=appointment.cancelled_at,
            createdBy=appointment.created_by,
            createdAt=appointment.created_at,
            updatedAt=appointment.updated_at,
        )


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    totalPages: int
    currentPage: int
    total: int
