"""Customer domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import Customer
from ...shared.validators import clean_tags, validate_email

LeadSource = Literal["referral", "yelp", "instagram", "facebook", "website", "repeat", "other"]


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class CustomerCreate(BaseModel):
    """Schema for creating a new customer"""

    name: str
    primaryPhone: Optional[str] = None
    primaryEmail: Optional[str] = None
    address: Optional[Address] = None
    tags: list[str] = []
    notes: str = ""
    source: LeadSource = "other"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("primaryEmail")
    @classmethod
    def validate_primary_email(cls, v):
        return validate_email(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return clean_tags(v)


class CustomerUpdate(BaseModel):
    """Schema for updating a customer; only fields sent are applied"""

    name: Optional[str] = None
    primaryPhone: Optional[str] = None
    primaryEmail: Optional[str] = None
    address: Optional[Address] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None
    source: Optional[LeadSource] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v else v

    @field_validator("primaryEmail")
    @classmethod
    def validate_primary_email(cls, v):
        return validate_email(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return clean_tags(v) if v is not None else v


class CustomerResponse(BaseModel):
    """Schema for customer response"""

    id: int
    name: str
    primaryPhone: Optional[str] = None
    primaryEmail: Optional[str] = None
    address: Optional[dict] = None
    tags: list[str]
    notes: str
    source: str
    createdBy: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            name=customer.name,
            primaryPhone=customer.primary_phone,
            primaryEmail=customer.primary_email,
            address=customer.address,
            tags=customer.tags or [],
            notes=customer.notes or "",
            source=customer.source,
            createdBy=customer.created_by,
            createdAt=customer.created_at,
            updatedAt=customer.updated_at,
        )


class CustomerListResponse(BaseModel):
    customers: list[CustomerResponse]
    totalPages: int
    currentPage: int
    total: int
