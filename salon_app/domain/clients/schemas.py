"""Client domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class DuplicateCheckRequest(BaseModel):
    """Candidate identity to look up; at least one field must be non-empty"""

    name: Optional[str] = None
    phone: Optional[str] = None


class ClientSummary(BaseModel):
    """Identity of an existing client returned with duplicate matches"""

    id: str
    userId: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class DuplicateMatch(BaseModel):
    type: str  # "phone" or "name"
    client: ClientSummary


class DuplicateCheckResponse(BaseModel):
    hasDuplicates: bool
    duplicates: list[DuplicateMatch]


class ClientCreate(BaseModel):
    """Schema for creating a new client. name and phone are checked by the service."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    birthday: Optional[date] = None
    preferences: Optional[dict[str, Any]] = None
    notes: Optional[str] = None
    preferredLocation: Optional[str] = None
    locations: Optional[list[str]] = None
    registrationSource: Optional[str] = None
    isAutoRegistered: Optional[bool] = False
    referredBy: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        if v and v.strip():
            return v.strip().lower()
        return None

    @field_validator("birthday", mode="before")
    @classmethod
    def blank_birthday_is_none(cls, v):
        # The dashboard form posts "" when no birthday is set
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ClientResponse(BaseModel):
    """Client as shown on the dashboard"""

    id: str
    userId: str
    name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip: str
    birthday: str
    preferredLocation: str
    locations: list[str]
    status: str
    avatar: str
    segment: str
    totalSpent: float
    referredBy: str
    preferences: dict[str, Any]
    notes: str
    registrationSource: str
    isAutoRegistered: bool
    currency: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class ClientCreateResponse(BaseModel):
    client: ClientResponse
    message: str


class ClientListResponse(BaseModel):
    clients: list[ClientResponse]


class ClientDetailResponse(BaseModel):
    client: ClientResponse
