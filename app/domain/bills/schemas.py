"""Bill domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

BillCategory = Literal["utilities", "rent", "supplies", "equipment", "insurance", "taxes", "software", "other"]


class BillCreate(BaseModel):
    """Schema for creating a recurring bill"""

    title: str
    description: Optional[str] = None
    dueDay: int = Field(ge=1, le=31)
    billUrl: Optional[str] = None
    vendor: Optional[str] = None
    category: BillCategory = "other"

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class BillUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    dueDay: Optional[int] = Field(default=None, ge=1, le=31)
    billUrl: Optional[str] = None
    vendor: Optional[str] = None
    category: Optional[BillCategory] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip() if v else v


class BillResponse(BaseModel):
    """Schema for bill response, with the next due date for reminders"""

    id: int
    title: str
    description: Optional[str] = None
    dueDay: int
    billUrl: Optional[str] = None
    vendor: Optional[str] = None
    category: str
    nextDueDate: date
    daysUntilDue: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class BillEnvelope(BaseModel):
    bill: BillResponse


class BillListResponse(BaseModel):
    bills: list[BillResponse]
