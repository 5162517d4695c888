"""Customer service - Business logic for customer operations"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Customer, Job, User
from ...shared.exceptions import NotFoundError
from ..activities.service import record_activity
from ..jobs.repository import JobRepository
from .repository import CustomerRepository
from .schemas import CustomerCreate, CustomerUpdate

logger = logging.getLogger(__name__)

# Wire name -> column
CUSTOMER_FIELDS = {
    "name": "name",
    "primaryPhone": "primary_phone",
    "primaryEmail": "primary_email",
    "address": "address",
    "tags": "tags",
    "notes": "notes",
    "source": "source",
}

# Changes to these are recorded on the customer_updated activity
TRACKED_FIELDS = ("name", "primaryPhone", "primaryEmail")


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def get_customers(
        self,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        page = max(page, 1)
        limit = max(limit, 1)
        customers, total = self.repo.get_customers(self.db, search, tag, page, limit)
        return {
            "customers": customers,
            "totalPages": math.ceil(total / limit),
            "currentPage": page,
            "total": total,
        }

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.repo.get_customer_by_id(self.db, customer_id)
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    def create_customer(self, data: CustomerCreate, actor: User) -> Customer:
        logger.info(f"📥 Creating customer '{data.name}' for user_id: {actor.id}")

        payload = data.model_dump(mode="json")
        customer = self.repo.create_customer(
            self.db,
            created_by=actor.id,
            **{CUSTOMER_FIELDS[key]: value for key, value in payload.items()},
        )

        record_activity(
            self.db,
            "customer_created",
            customer_id=customer.id,
            created_by=actor.id,
            note=f'Customer "{customer.name}" created',
        )
        return customer

    def update_customer(self, customer_id: int, data: CustomerUpdate, actor: User) -> Customer:
        customer = self.get_customer(customer_id)
        old_values = {
            "name": customer.name,
            "primaryPhone": customer.primary_phone,
            "primaryEmail": customer.primary_email,
        }

        payload = data.model_dump(mode="json", exclude_unset=True)
        updates = {CUSTOMER_FIELDS[key]: value for key, value in payload.items()}
        if "name" in updates and updates["name"] is None:
            updates.pop("name")
        customer = self.repo.update_customer(self.db, customer, **updates)

        new_values = {
            "name": customer.name,
            "primaryPhone": customer.primary_phone,
            "primaryEmail": customer.primary_email,
        }
        changes = {
            field: {"from": old_values[field], "to": new_values[field]}
            for field in TRACKED_FIELDS
            if old_values[field] != new_values[field]
        }
        if changes:
            record_activity(
                self.db,
                "customer_updated",
                customer_id=customer.id,
                created_by=actor.id,
                changes=changes,
                note="Customer information updated",
            )

        logger.info(f"✅ Customer {customer.id} updated")
        return customer

    def get_customer_jobs(self, customer_id: int) -> list[Job]:
        self.get_customer(customer_id)
        return JobRepository.get_jobs_for_customer(self.db, customer_id)
