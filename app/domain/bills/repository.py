"""Bill repository - Database operations for recurring bills"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Bill


class BillRepository:
    """Repository for bill database operations"""

    @staticmethod
    def get_bills(db: Session) -> list[Bill]:
        return db.query(Bill).order_by(Bill.due_day.asc(), Bill.id.asc()).all()

    @staticmethod
    def get_bill_by_id(db: Session, bill_id: int) -> Optional[Bill]:
        return db.query(Bill).filter(Bill.id == bill_id).first()

    @staticmethod
    def create_bill(db: Session, **bill_data) -> Bill:
        bill = Bill(**bill_data)
        db.add(bill)
        db.commit()
        db.refresh(bill)
        return bill

    @staticmethod
    def update_bill(db: Session, bill: Bill, **updates) -> Bill:
        for key, value in updates.items():
            setattr(bill, key, value)

        db.commit()
        db.refresh(bill)
        return bill

    @staticmethod
    def delete_bill(db: Session, bill: Bill) -> None:
        db.delete(bill)
        db.commit()
