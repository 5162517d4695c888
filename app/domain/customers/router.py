"""Customer router - FastAPI endpoints for customer operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_actor
from ...database import get_db
from ...models import User
from ..jobs.schemas import JobResponse
from .schemas import CustomerCreate, CustomerListResponse, CustomerResponse, CustomerUpdate
from .service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


@router.get("", response_model=CustomerListResponse)
async def get_customers(
    search: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    service: CustomerService = Depends(get_customer_service),
):
    """List customers, newest first"""
    result = service.get_customers(search, tag, page, limit)
    return CustomerListResponse(
        customers=[CustomerResponse.from_model(c) for c in result["customers"]],
        totalPages=result["totalPages"],
        currentPage=result["currentPage"],
        total=result["total"],
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    actor: User = Depends(get_actor),
    service: CustomerService = Depends(get_customer_service),
):
    """Create a new customer"""
    return CustomerResponse.from_model(service.create_customer(data, actor))


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: int, service: CustomerService = Depends(get_customer_service)):
    return CustomerResponse.from_model(service.get_customer(customer_id))


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    data: CustomerUpdate,
    actor: User = Depends(get_actor),
    service: CustomerService = Depends(get_customer_service),
):
    """Update a customer; name/phone/email changes are logged"""
    return CustomerResponse.from_model(service.update_customer(customer_id, data, actor))


@router.get("/{customer_id}/jobs", response_model=list[JobResponse])
async def get_customer_jobs(
    customer_id: int, service: CustomerService = Depends(get_customer_service)
):
    """All jobs of a customer, archived ones included"""
    return [JobResponse.from_model(job) for job in service.get_customer_jobs(customer_id)]
