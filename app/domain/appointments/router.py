"""Appointment router - FastAPI endpoints for appointments"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_actor
from ...database import get_db
from ...models import User
from .schemas import AppointmentCreate, AppointmentListResponse, AppointmentResponse, AppointmentUpdate
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def to_list_response(result: dict) -> AppointmentListResponse:
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_model(a) for a in result["appointments"]],
        totalPages=result["totalPages"],
        currentPage=result["currentPage"],
        total=result["total"],
    )


@router.get("", response_model=AppointmentListResponse)
async def get_appointments(
    status: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Scheduled appointments unless another status is asked for"""
    return to_list_response(service.get_appointments(status, date, page, limit))


@router.get("/completed", response_model=AppointmentListResponse)
async def get_completed_appointments(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointment history: completed, cancelled and no-shows"""
    return to_list_response(service.get_closed_appointments(startDate, endDate, page, limit))


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    actor: User = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.create_appointment(data, actor))


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(appointment_id: int, service: AppointmentService = Depends(get_appointment_service)):
    return AppointmentResponse.from_model(service.get_appointment(appointment_id))


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    actor: User = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.update_appointment(appointment_id, data))


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    actor: User = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.complete_appointment(appointment_id, actor))


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    actor: User = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.cancel_appointment(appointment_id))


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    actor: User = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.delete_appointment(appointment_id)
    return {"message": "Appointment deleted successfully"}
