from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship, validates

from .database import Base
from .domain.jobs.stages import DEFAULT_CREATION_STAGE, is_valid_stage
from .shared.dates import utcnow

USER_ROLES = ("super_admin", "admin", "manager", "sales", "installer", "read_only", "employee")
LEAD_SOURCES = ("referral", "yelp", "instagram", "facebook", "website", "repeat", "other")

ACTIVITY_TYPES = (
    "customer_created",
    "customer_updated",
    "job_created",
    "job_updated",
    "job_archived",
    "stage_change",
    "value_update",
    "note",
    "call",
    "email",
    "sms",
    "meeting",
    "file_uploaded",
    "file_deleted",
    "estimate_sent",
    "estimate_updated",
    "contract_signed",
    "deposit_received",
    "payment_received",
    "job_scheduled",
    "calendar_sync",
    "task_created",
    "task_completed",
    "takeoff_complete",
)

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_TYPES = (
    "follow_up",
    "send_estimate",
    "review_design",
    "collect_deposit",
    "schedule_install",
    "site_visit",
    "quality_check",
    "collect_payment",
    "other",
)
APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled", "no_show")
BILL_CATEGORIES = ("utilities", "rent", "supplies", "equipment", "insurance", "taxes", "software", "other")

# Job columns exposed in the document form, keyed by their wire (camelCase) name
JOB_DOCUMENT_FIELDS = {
    "id": "id",
    "customerId": "customer_id",
    "title": "title",
    "stage": "stage",
    "valueEstimated": "value_estimated",
    "valueContracted": "value_contracted",
    "source": "source",
    "assignedTo": "assigned_to",
    "appointment": "appointment",
    "estimate": "estimate",
    "contract": "contract",
    "takeoff": "takeoff",
    "schedule": "schedule",
    "calendar": "calendar",
    "color": "color",
    "finalPayment": "final_payment",
    "notes": "notes",
    "isArchived": "is_archived",
    "archivedAt": "archived_at",
    "archivedBy": "archived_by",
    "isDeadEstimate": "is_dead_estimate",
    "movedToDeadEstimateAt": "moved_to_dead_estimate_at",
    "createdBy": "created_by",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(50), default="employee", nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)  # New users need admin approval
    is_pending = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    primary_phone = Column(String(50), nullable=True)
    primary_email = Column(String(255), nullable=True, index=True)
    address = Column(JSON, nullable=True)  # {street, city, state, zip}
    tags = Column(JSON, default=list, nullable=False)
    notes = Column(Text, default="", nullable=False)
    source = Column(String(50), default="other", nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    jobs = relationship("Job", back_populates="customer")
    creator = relationship("User", foreign_keys=[created_by])


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    stage = Column(String(50), default=DEFAULT_CREATION_STAGE, nullable=False, index=True)
    value_estimated = Column(Float, default=0, nullable=False)
    value_contracted = Column(Float, default=0, nullable=False)
    source = Column(String(50), default="other", nullable=False)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Nested sub-documents; a supplied sub-document replaces the stored one
    appointment = Column(JSON, nullable=True)  # {dateTime, location, notes}
    estimate = Column(JSON, nullable=True)  # {amount, sentAt, lineItems}
    contract = Column(JSON, nullable=True)  # {signedAt, depositRequired, depositReceived, depositReceivedAt}
    takeoff = Column(JSON, nullable=True)  # {completedAt, completedBy, notes}
    schedule = Column(JSON, nullable=True)  # {startDate, endDate, installer, crewNotes, recurrence}
    calendar = Column(JSON, nullable=True)  # {googleEventId, calendarStatus, lastSyncedAt}
    final_payment = Column(JSON, nullable=True)  # {amountDue, amountPaid, paidAt, paymentMethod}
    color = Column(String(20), default="#1976D2", nullable=False)

    # Append-only timeline: [{id, content, createdBy, createdAt, isStageChange, isAppointment}]
    notes = Column(JSON, default=list, nullable=False)

    # Manual archive
    is_archived = Column(Boolean, default=False, nullable=False, index=True)
    archived_at = Column(DateTime, nullable=True)
    archived_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Automatic archive of estimates that got no response
    is_dead_estimate = Column(Boolean, default=False, nullable=False, index=True)
    moved_to_dead_estimate_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="jobs")
    creator = relationship("User", foreign_keys=[created_by])
    assignee = relationship("User", foreign_keys=[assigned_to])

    @validates("stage")
    def validate_stage(self, _key, value):
        if not is_valid_stage(value):
            raise ValueError(f"Invalid job stage: {value!r}")
        return value

    @property
    def is_active_in_pipeline(self) -> bool:
        return not self.is_archived and not self.is_dead_estimate

    def to_document(self) -> dict:
        """Snapshot of the job in its wire form (camelCase keys, copied containers)"""
        document = {}
        for key, attr in JOB_DOCUMENT_FIELDS.items():
            value = getattr(self, attr)
            document[key] = _deep_copy(value)
        if document["notes"] is None:
            document["notes"] = []
        return document


class Task(Base):
    """A to-do, optionally tied to a job; projects carry their own notes and updates"""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)
    priority = Column(String(20), default="medium", nullable=False)
    type = Column(String(50), default="follow_up", nullable=False)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    completed_at = Column(DateTime, nullable=True, index=True)
    completed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Project fields: [{id, content, createdBy, createdAt}]
    is_project = Column(Boolean, default=False, nullable=False, index=True)
    notes = Column(JSON, default=list, nullable=False)
    updates = Column(JSON, default=list, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    job = relationship("Job")
    customer = relationship("Customer")
    assignee = relationship("User", foreign_keys=[assigned_to])
    completer = relationship("User", foreign_keys=[completed_by])
    creator = relationship("User", foreign_keys=[created_by])

    @validates("priority")
    def validate_priority(self, _key, value):
        if value not in TASK_PRIORITIES:
            raise ValueError(f"Invalid task priority: {value!r}")
        return value

    @validates("type")
    def validate_type(self, _key, value):
        if value not in TASK_TYPES:
            raise ValueError(f"Invalid task type: {value!r}")
        return value

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def is_overdue(self) -> bool:
        if self.completed_at or not self.due_date:
            return False
        return self.due_date < utcnow()


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    time = Column(String(20), nullable=False)  # "10:00 AM" or "14:30"
    reason = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="scheduled", nullable=False, index=True)

    # Set when the appointment led to a job / belongs to a known customer
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)

    # Contact details for people not in the system yet
    customer_name = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)

    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    job = relationship("Job")
    customer = relationship("Customer")
    creator = relationship("User", foreign_keys=[created_by])

    @validates("status")
    def validate_status(self, _key, value):
        if value not in APPOINTMENT_STATUSES:
            raise ValueError(f"Invalid appointment status: {value!r}")
        return value


class Bill(Base):
    """Recurring monthly bill, due on the same day every month"""

    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_day = Column(Integer, nullable=False)  # 1-31
    bill_url = Column(String(1000), nullable=True)
    vendor = Column(String(255), nullable=True)
    category = Column(String(50), default="other", nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Activity(Base):
    """Write-once audit record; rows are inserted and never updated"""

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, index=True)

    # Plain indexed references so the log outlives deleted jobs
    job_id = Column(Integer, nullable=True, index=True)
    customer_id = Column(Integer, nullable=False, index=True)

    # Stage change specific
    from_stage = Column(String(50), nullable=True)
    to_stage = Column(String(50), nullable=True)

    # Update tracking: {"schedule.startDate": {"from": ..., "to": ...}}
    changes = Column(JSON, nullable=True)

    note = Column(Text, nullable=False)

    # File-related
    file_id = Column(Integer, nullable=True)
    file_name = Column(String(500), nullable=True)

    # Payment-related
    amount = Column(Float, nullable=True)
    payment_type = Column(String(50), nullable=True)
    payment_method = Column(String(50), nullable=True)

    # Meeting/call related
    duration = Column(String(50), nullable=True)
    location = Column(String(500), nullable=True)

    # Email related
    subject = Column(String(500), nullable=True)

    # Calendar related
    google_event_id = Column(String(255), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)

    author = relationship("User", foreign_keys=[created_by])

    @validates("type")
    def validate_type(self, _key, value):
        if value not in ACTIVITY_TYPES:
            raise ValueError(f"Invalid activity type: {value!r}")
        return value


@event.listens_for(Activity, "before_update")
def _reject_activity_update(_mapper, _connection, target):
    raise ValueError(f"Activity {target.id} is immutable")


def _deep_copy(value):
    if isinstance(value, dict):
        return {k: _deep_copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_deep_copy(v) for v in value]
    return value
