"""Activity domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import Activity

ManualActivityType = Literal["note", "call", "email", "sms", "meeting"]


class ManualActivityCreate(BaseModel):
    """Schema for logging a manual activity against a job"""

    type: ManualActivityType
    note: str
    subject: Optional[str] = None
    duration: Optional[str] = None
    location: Optional[str] = None

    @field_validator("note")
    @classmethod
    def validate_note(cls, v):
        if not v or not v.strip():
            raise ValueError("Note is required")
        return v.strip()


class ActivityResponse(BaseModel):
    """Schema for activity response"""

    id: int
    type: str
    jobId: Optional[int] = None
    customerId: int
    fromStage: Optional[str] = None
    toStage: Optional[str] = None
    changes: Optional[dict[str, Any]] = None
    note: str
    fileName: Optional[str] = None
    amount: Optional[float] = None
    paymentMethod: Optional[str] = None
    duration: Optional[str] = None
    location: Optional[str] = None
    subject: Optional[str] = None
    createdBy: int
    createdByName: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, activity: Activity) -> "ActivityResponse":
        return cls(
            id=activity.id,
            type=activity.type,
            jobId=activity.job_id,
            customerId=activity.customer_id,
            fromStage=activity.from_stage,
            toStage=activity.to_stage,
            changes=activity.changes,
            note=activity.note,
            fileName=activity.file_name,
            amount=activity.amount,
            paymentMethod=activity.payment_method,
            duration=activity.duration,
            location=activity.location,
            subject=activity.subject,
            createdBy=activity.created_by,
            createdByName=activity.author.name if activity.author else None,
            createdAt=activity.created_at,
        )
