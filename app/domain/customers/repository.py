"""Customer repository - Database operations for customers"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Customer


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_customers(
        db: Session,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Customer], int]:
        """Customers newest first, with the total count for paging"""
        query = db.query(Customer)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Customer.name.ilike(pattern), Customer.primary_email.ilike(pattern)))

        customers = query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()

        # Tags live in a JSON list; filtered here to stay portable across backends
        if tag:
            customers = [c for c in customers if tag in (c.tags or [])]

        total = len(customers)
        start = (page - 1) * limit
        return customers[start : start + limit], total

    @staticmethod
    def get_customer_by_id(db: Session, customer_id: int) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def create_customer(db: Session, created_by: int, **customer_data) -> Customer:
        customer = Customer(created_by=created_by, **customer_data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def update_customer(db: Session, customer: Customer, **updates) -> Customer:
        for key, value in updates.items():
            setattr(customer, key, value)

        db.commit()
        db.refresh(customer)
        return customer
