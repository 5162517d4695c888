from datetime import date

import pytest

from app.domain.bills.schemas import BillCreate, BillUpdate
from app.domain.bills.service import BillService, next_due_date
from app.shared.exceptions import NotFoundError


@pytest.mark.parametrize(
    "due_day, today, expected",
    [
        (15, date(2026, 10, 10), date(2026, 10, 15)),
        (15, date(2026, 10, 15), date(2026, 10, 15)),
        (15, date(2026, 10, 16), date(2026, 11, 15)),
        (31, date(2026, 2, 10), date(2026, 2, 28)),
        (31, date(2028, 2, 10), date(2028, 2, 29)),
        (5, date(2026, 12, 20), date(2027, 1, 5)),
    ],
)
def test_next_due_date(due_day, today, expected):
    assert next_due_date(due_day, today) == expected


def test_bills_are_ordered_by_due_day(db):
    service = BillService(db)
    service.create_bill(BillCreate(title="Rent", dueDay=1, category="rent"))
    service.create_bill(BillCreate(title="Power", dueDay=20, category="utilities"))
    service.create_bill(BillCreate(title="CRM seats", dueDay=12, category="software"))

    assert [b.title for b in service.get_bills(today=date(2026, 10, 19))] == ["Rent", "CRM seats", "Power"]


def test_upcoming_bills(db):
    service = BillService(db)
    service.create_bill(BillCreate(title="Rent", dueDay=1))
    service.create_bill(BillCreate(title="Power", dueDay=20))
    service.create_bill(BillCreate(title="Insurance", dueDay=10))

    upcoming = service.get_upcoming_bills(days=14, today=date(2026, 10, 19))
    assert [(b.title, b.daysUntilDue) for b in upcoming] == [("Power", 1), ("Rent", 13)]


def test_update_ignores_cleared_required_fields(db):
    service = BillService(db)
    bill = service.create_bill(BillCreate(title="Internet", dueDay=8, vendor="FiberCo"))

    updated = service.update_bill(bill.id, BillUpdate(title=None, dueDay=9, vendor=None))
    assert updated.title == "Internet"
    assert updated.dueDay == 9
    assert updated.vendor is None

    service.delete_bill(bill.id)
    with pytest.raises(NotFoundError):
        service.get_bill(bill.id)


def test_bill_routes(client, auth_headers):
    assert client.get("/bills").status_code == 401

    created = client.post("/bills", json={"title": "Rent", "dueDay": 1}, headers=auth_headers)
    assert created.status_code == 201
    bill = created.json()["bill"]
    assert bill["category"] == "other"

    assert client.get(f"/bills/{bill['id']}", headers=auth_headers).json()["bill"]["title"] == "Rent"
    assert [b["id"] for b in client.get("/bills", headers=auth_headers).json()["bills"]] == [bill["id"]]

    assert client.post("/bills", json={"title": "Bad", "dueDay": 32}, headers=auth_headers).status_code == 422
    assert client.patch(f"/bills/{bill['id']}", json={"dueDay": 0}, headers=auth_headers).status_code == 422
    assert client.delete(f"/bills/{bill['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/bills/{bill['id']}", headers=auth_headers).status_code == 404
