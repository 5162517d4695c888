"""Bill router - FastAPI endpoints for recurring bills"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_actor
from ...database import get_db
from .schemas import BillCreate, BillEnvelope, BillListResponse, BillUpdate
from .service import BillService

logger = logging.getLogger(__name__)

# Bills are internal bookkeeping; every route needs a user
router = APIRouter(prefix="/bills", tags=["Bills"], dependencies=[Depends(get_actor)])


def get_bill_service(db: Session = Depends(get_db)) -> BillService:
    """Dependency injection for BillService"""
    return BillService(db)


@router.get("", response_model=BillListResponse)
async def get_bills(service: BillService = Depends(get_bill_service)):
    return BillListResponse(bills=service.get_bills())


@router.get("/upcoming", response_model=BillListResponse)
async def get_upcoming_bills(
    days: int = Query(7, ge=0, le=31),
    service: BillService = Depends(get_bill_service),
):
    """Bills coming due in the next few days"""
    return BillListResponse(bills=service.get_upcoming_bills(days))


@router.get("/{bill_id}", response_model=BillEnvelope)
async def get_bill(bill_id: int, service: BillService = Depends(get_bill_service)):
    return BillEnvelope(bill=service.get_bill(bill_id))


@router.post("", response_model=BillEnvelope, status_code=status.HTTP_201_CREATED)
async def create_bill(data: BillCreate, service: BillService = Depends(get_bill_service)):
    return BillEnvelope(bill=service.create_bill(data))


@router.patch("/{bill_id}", response_model=BillEnvelope)
async def update_bill(bill_id: int, data: BillUpdate, service: BillService = Depends(get_bill_service)):
    return BillEnvelope(bill=service.update_bill(bill_id, data))


@router.delete("/{bill_id}")
async def delete_bill(bill_id: int, service: BillService = Depends(get_bill_service)):
    service.delete_bill(bill_id)
    return {"message": "Bill deleted successfully"}
