"""Job domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Job
from .stages import stage_label

LeadSource = Literal["referral", "yelp", "instagram", "facebook", "website", "repeat", "other"]


class Appointment(BaseModel):
    dateTime: Optional[datetime] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class LineItem(BaseModel):
    description: Optional[str] = None
    quantity: Optional[float] = None
    unitPrice: Optional[float] = None
    total: Optional[float] = None


class Estimate(BaseModel):
    amount: Optional[float] = None
    sentAt: Optional[datetime] = None
    lineItems: Optional[list[LineItem]] = None


class ContractDetails(BaseModel):
    signedAt: Optional[datetime] = None
    depositRequired: Optional[float] = None
    depositReceived: Optional[float] = None
    depositReceivedAt: Optional[datetime] = None


class Takeoff(BaseModel):
    completedAt: Optional[datetime] = None
    completedBy: Optional[int] = None
    notes: Optional[str] = None


class Recurrence(BaseModel):
    type: Literal["none", "daily", "weekly", "monthly", "yearly"] = "none"
    interval: int = 1
    count: int = 10


class Schedule(BaseModel):
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    installer: Optional[str] = None  # Installer name for calendar ordering
    crewNotes: Optional[str] = None
    recurrence: Optional[Recurrence] = None


class CalendarSync(BaseModel):
    googleEventId: Optional[str] = None
    calendarStatus: Literal["created", "updated", "error", "none"] = "none"
    lastSyncedAt: Optional[datetime] = None


class FinalPayment(BaseModel):
    amountDue: Optional[float] = None
    amountPaid: Optional[float] = None
    paidAt: Optional[datetime] = None
    paymentMethod: Optional[Literal["cash", "check", "bank_transfer", "credit_card", "other"]] = None


class NoteInput(BaseModel):
    """
    A note as sent by the client. Notes without a known id are new; their
    author and timestamp are always stamped server-side.
    """

    id: Optional[str] = None
    content: Optional[str] = None
    isStageChange: Optional[bool] = None
    isAppointment: Optional[bool] = None


class JobCreate(BaseModel):
    """Schema for creating a new job"""

    customerId: int
    title: str
    stage: Optional[str] = None
    valueEstimated: float = Field(default=0, ge=0)
    valueContracted: float = Field(default=0, ge=0)
    source: LeadSource = "other"
    assignedTo: Optional[int] = None
    appointment: Optional[Appointment] = None
    estimate: Optional[Estimate] = None
    contract: Optional[ContractDetails] = None
    takeoff: Optional[Takeoff] = None
    schedule: Optional[Schedule] = None
    calendar: Optional[CalendarSync] = None
    finalPayment: Optional[FinalPayment] = None
    color: Optional[str] = None
    notes: Optional[list[NoteInput]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class JobUpdate(BaseModel):
    """
    Schema for patching a job. Only fields the client actually sent are
    applied; a supplied sub-document replaces the stored one.
    """

    title: Optional[str] = None
    stage: Optional[str] = None
    valueEstimated: Optional[float] = Field(default=None, ge=0)
    valueContracted: Optional[float] = Field(default=None, ge=0)
    source: Optional[LeadSource] = None
    assignedTo: Optional[int] = None
    appointment: Optional[Appointment] = None
    estimate: Optional[Estimate] = None
    contract: Optional[ContractDetails] = None
    takeoff: Optional[Takeoff] = None
    schedule: Optional[Schedule] = None
    calendar: Optional[CalendarSync] = None
    finalPayment: Optional[FinalPayment] = None
    color: Optional[str] = None
    notes: Optional[list[NoteInput]] = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class MoveStageRequest(BaseModel):
    toStage: str
    note: Optional[str] = None


class CustomerSummary(BaseModel):
    id: int
    name: str
    primaryPhone: Optional[str] = None
    primaryEmail: Optional[str] = None


class JobResponse(BaseModel):
    """Schema for job response (document form plus display helpers)"""

    id: int
    customerId: int
    customer: Optional[CustomerSummary] = None
    title: str
    stage: str
    stageLabel: str
    valueEstimated: float
    valueContracted: float
    source: str
    assignedTo: Optional[int] = None
    appointment: Optional[dict[str, Any]] = None
    estimate: Optional[dict[str, Any]] = None
    contract: Optional[dict[str, Any]] = None
    takeoff: Optional[dict[str, Any]] = None
    schedule: Optional[dict[str, Any]] = None
    calendar: Optional[dict[str, Any]] = None
    finalPayment: Optional[dict[str, Any]] = None
    color: str
    notes: list[dict[str, Any]]
    isArchived: bool
    archivedAt: Optional[datetime] = None
    archivedBy: Optional[int] = None
    isDeadEstimate: bool
    movedToDeadEstimateAt: Optional[datetime] = None
    createdBy: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, job: Job) -> "JobResponse":
        customer = None
        if job.customer is not None:
            customer = CustomerSummary(
                id=job.customer.id,
                name=job.customer.name,
                primaryPhone=job.customer.primary_phone,
                primaryEmail=job.customer.primary_email,
            )
        return cls(**job.to_document(), customer=customer, stageLabel=stage_label(job.stage))


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    totalPages: int
    currentPage: int
    total: int


class StageSummary(BaseModel):
    stage: str
    label: str
    count: int
    totalValue: float


class MonthGroup(BaseModel):
    year: int
    month: int
    monthName: str
    jobs: list[JobResponse]
