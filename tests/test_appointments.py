from datetime import datetime

import pytest

from app.domain.appointments.schemas import AppointmentCreate, AppointmentUpdate
from app.domain.appointments.service import AppointmentService
from app.models import Activity
from app.shared.exceptions import InvalidTransition, NotFoundError, ValidationError


def booking(**overrides):
    fields = {"title": "Measure kitchen", "date": datetime(2026, 11, 2, 15, 0), "time": "10:00 AM"}
    fields.update(overrides)
    return AppointmentCreate(**fields)


def test_booking_for_a_job_notes_the_job_and_logs_a_meeting(db, make_job, user):
    job = make_job()

    appointment = AppointmentService(db).create_appointment(booking(jobId=job.id, location="Unit 4B"), user)

    assert appointment.status == "scheduled"
    assert appointment.customer_id == job.customer_id

    db.refresh(job)
    note = job.notes[-1]
    assert note["content"] == "Appointment scheduled: Measure kitchen on Nov 2, 2026 at 10:00 AM"
    assert note["isAppointment"] is True

    meetings = db.query(Activity).filter(Activity.type == "meeting").all()
    assert len(meetings) == 1
    assert meetings[0].job_id == job.id
    assert meetings[0].location == "Unit 4B"
    assert meetings[0].note == "Appointment scheduled: Measure kitchen on Nov 2, 2026 at 10:00 AM"


def test_walk_in_without_customer_is_not_logged(db, user):
    appointment = AppointmentService(db).create_appointment(
        booking(customerName="Pat Lee", customerPhone="555-0199", customerEmail="PAT@Example.com"), user
    )

    assert appointment.customer_id is None
    assert appointment.customer_email == "pat@example.com"
    assert db.query(Activity).count() == 0


def test_booking_for_unknown_job_is_rejected(db, user):
    with pytest.raises(NotFoundError):
        AppointmentService(db).create_appointment(booking(jobId=404), user)


def test_complete_and_cancel(db, customer, user):
    service = AppointmentService(db)
    first = service.create_appointment(booking(customerId=customer.id), user)
    second = service.create_appointment(booking(title="Review samples"), user)

    completed = service.complete_appointment(first.id, user)
    assert completed.status == "completed"
    assert completed.completed_at is not None
    notes = [a.note for a in db.query(Activity).order_by(Activity.id.asc())]
    assert notes[-1] == "Appointment completed: Measure kitchen"

    with pytest.raises(InvalidTransition):
        service.complete_appointment(first.id, user)

    cancelled = service.cancel_appointment(second.id)
    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_at is not None
    with pytest.raises(InvalidTransition):
        service.cancel_appointment(second.id)

    assert service.get_appointments()["total"] == 0
    history = service.get_closed_appointments()
    assert {a.id for a in history["appointments"]} == {first.id, second.id}


def test_listing_filters_by_status_and_day(db, user):
    service = AppointmentService(db)
    morning = service.create_appointment(booking(date=datetime(2026, 11, 2, 9, 0), time="9:00 AM"), user)
    service.create_appointment(booking(date=datetime(2026, 11, 3, 9, 0)), user)

    on_day = service.get_appointments(date="2026-11-02")
    assert [a.id for a in on_day["appointments"]] == [morning.id]
    assert service.get_appointments()["total"] == 2

    with pytest.raises(ValidationError):
        service.get_appointments(status="rescheduled")
    with pytest.raises(ValidationError):
        service.get_appointments(date="next tuesday")


def test_update_cannot_clear_required_fields(db, user):
    service = AppointmentService(db)
    appointment = service.create_appointment(booking(), user)

    updated = service.update_appointment(appointment.id, AppointmentUpdate(title=None, location="Showroom"))
    assert updated.title == "Measure kitchen"
    assert updated.location == "Showroom"


def test_appointment_routes(client, auth_headers, customer):
    created = client.post(
        "/appointments",
        json={"title": "Consultation", "date": "2026-11-02T15:00:00", "time": "3:00 PM", "customerId": customer.id},
        headers=auth_headers,
    )
    assert created.status_code == 201
    appointment_id = created.json()["id"]
    assert created.json()["customer"]["name"] == customer.name

    assert client.get(f"/appointments/{appointment_id}").json()["status"] == "scheduled"
    assert client.post(f"/appointments/{appointment_id}/complete", headers=auth_headers).json()["status"] == "completed"
    assert client.get("/appointments/completed").json()["total"] == 1

    assert client.delete(f"/appointments/{appointment_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/appointments/{appointment_id}").status_code == 404
    assert client.post("/appointments", json={"title": "X", "date": "2026-11-02", "time": " "}, headers=auth_headers).status_code == 422
