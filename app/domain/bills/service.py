"""Bill service - Recurring monthly bills and due-date reminders"""

import calendar
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Bill
from ...shared.dates import utcnow
from ...shared.exceptions import NotFoundError
from .repository import BillRepository
from .schemas import BillCreate, BillResponse, BillUpdate

logger = logging.getLogger(__name__)

# Wire name -> column
BILL_FIELDS = {
    "title": "title",
    "description": "description",
    "dueDay": "due_day",
    "billUrl": "bill_url",
    "vendor": "vendor",
    "category": "category",
}


def due_date_in_month(due_day: int, year: int, month: int) -> date:
    """Due day clamped to the month's length (day 31 falls on Feb 28/29)"""
    return date(year, month, min(due_day, calendar.monthrange(year, month)[1]))


def next_due_date(due_day: int, today: date) -> date:
    """The next due date on or after today"""
    this_month = due_date_in_month(due_day, today.year, today.month)
    if this_month >= today:
        return this_month
    year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
    return due_date_in_month(due_day, year, month)


def to_response(bill: Bill, today: date) -> BillResponse:
    due = next_due_date(bill.due_day, today)
    return BillResponse(
        id=bill.id,
        title=bill.title,
        description=bill.description,
        dueDay=bill.due_day,
        billUrl=bill.bill_url,
        vendor=bill.vendor,
        category=bill.category,
        nextDueDate=due,
        daysUntilDue=(due - today).days,
        createdAt=bill.created_at,
        updatedAt=bill.updated_at,
    )


class BillService:
    """Service layer for bill business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillRepository()

    def get_bills(self, today: Optional[date] = None) -> list[BillResponse]:
        """All bills ordered by day of month"""
        today = today or utcnow().date()
        return [to_response(bill, today) for bill in self.repo.get_bills(self.db)]

    def get_upcoming_bills(self, days: int = 7, today: Optional[date] = None) -> list[BillResponse]:
        """Bills due within the next `days` days, soonest first"""
        upcoming = [b for b in self.get_bills(today) if b.daysUntilDue <= days]
        return sorted(upcoming, key=lambda b: (b.nextDueDate, b.id))

    def get_bill(self, bill_id: int, today: Optional[date] = None) -> BillResponse:
        return to_response(self._get(bill_id), today or utcnow().date())

    def _get(self, bill_id: int) -> Bill:
        bill = self.repo.get_bill_by_id(self.db, bill_id)
        if not bill:
            raise NotFoundError("Bill not found")
        return bill

    def create_bill(self, data: BillCreate) -> BillResponse:
        logger.info(f"📥 Creating bill '{data.title}' due on day {data.dueDay}")
        bill = self.repo.create_bill(
            self.db, **{BILL_FIELDS[key]: value for key, value in data.model_dump().items()}
        )
        return to_response(bill, utcnow().date())

    def update_bill(self, bill_id: int, data: BillUpdate) -> BillResponse:
        bill = self._get(bill_id)
        updates = {
            BILL_FIELDS[key]: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in ("title", "dueDay", "category")
        }
        bill = self.repo.update_bill(self.db, bill, **updates)
        logger.info(f"✅ Bill {bill.id} updated")
        return to_response(bill, utcnow().date())

    def delete_bill(self, bill_id: int) -> None:
        self.repo.delete_bill(self.db, self._get(bill_id))
        logger.info(f"🗑️ Bill {bill_id} deleted")
