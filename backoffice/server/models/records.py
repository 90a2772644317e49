"""
Pydantic request models for back-office record mutations.

Field names are snake_case in Python and camelCase on the wire; handlers
pass ``model_dump(by_alias=True, exclude_unset=True)`` to the database layer.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# =============================================================================
# Business cards
# =============================================================================

CardTemplate = Literal["MODERN", "CLASSIC", "MINIMAL", "EUSTON"]
QrType = Literal["WEBSITE", "EMAIL"]


class BusinessCardCreate(CamelModel):
    """Request to create a business card."""
    company_id: int = Field(..., description="Owning company")
    person_name: str = Field("", max_length=200)
    position: str = Field("", max_length=200)
    person_email: str = Field("", max_length=320)
    person_phone: str = Field("", max_length=50)
    qr_type: QrType = Field("WEBSITE", description="QR code target")
    template: CardTemplate = Field("MODERN")
    is_archived: bool = False


class BusinessCardUpdate(CamelModel):
    """Partial update; omitted fields are left unchanged."""
    person_name: Optional[str] = Field(None, max_length=200)
    position: Optional[str] = Field(None, max_length=200)
    person_email: Optional[str] = Field(None, max_length=320)
    person_phone: Optional[str] = Field(None, max_length=50)
    qr_type: Optional[QrType] = None
    template: Optional[CardTemplate] = None
    is_archived: Optional[bool] = None


# =============================================================================
# Bank accounts
# =============================================================================

class BankAccountCreate(CamelModel):
    """Request to register a company bank account."""
    company_id: int
    bank_name: str = Field(..., min_length=1, max_length=200)
    bank_address: str = Field("", max_length=500)
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")
    iban: str = Field(..., min_length=5, max_length=34)
    swift_code: str = Field(..., min_length=8, max_length=11)
    account_number: Optional[str] = Field(None, max_length=50)
    account_name: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True
    notes: Optional[str] = None


class BankAccountUpdate(CamelModel):
    bank_name: Optional[str] = Field(None, min_length=1, max_length=200)
    bank_address: Optional[str] = Field(None, max_length=500)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    iban: Optional[str] = Field(None, min_length=5, max_length=34)
    swift_code: Optional[str] = Field(None, min_length=8, max_length=11)
    account_number: Optional[str] = Field(None, max_length=50)
    account_name: Optional[str] = Field(None, min_length=1, max_length=200)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


# =============================================================================
# Calendar events
# =============================================================================

EventType = Literal["MEETING", "DEADLINE", "REMINDER", "ANNIVERSARY", "OTHER"]
EventPriority = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]


class CalendarEventCreate(CamelModel):
    """Request to create a calendar event."""
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    date: datetime
    time: str = Field(..., description="Local start time (HH:MM)")
    type: EventType = "OTHER"
    priority: EventPriority = "MEDIUM"
    company: Optional[str] = None
    company_id: Optional[int] = None
    participants: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    end_time: Optional[str] = None
    is_all_day: bool = False


class CalendarEventUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[str] = None
    type: Optional[EventType] = None
    priority: Optional[EventPriority] = None
    company: Optional[str] = None
    company_id: Optional[int] = None
    participants: Optional[List[str]] = None
    location: Optional[str] = None
    end_time: Optional[str] = None
    is_all_day: Optional[bool] = None
