"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import Any, Dict, List, Optional

from domain.enums import BookingStatus, DayTone, ErrorKind, UserRole


# ============================================================================
# DRAFT SCHEMAS
# ============================================================================

class SetDatesRequest(BaseModel):
    """Set stay dates request DTO"""
    check_in: str
    check_out: str


class AddSelectionRequest(BaseModel):
    """Add room type request DTO, carrying the catalog entry it was picked from"""
    room_type_id: str
    unit_price: Decimal
    quantity: int = 1
    adults: int = 1
    children: int = 0
    infants: int = 0
    available_units: Optional[int] = Field(None, ge=0)


class SetQuantityRequest(BaseModel):
    """Change quantity request DTO"""
    quantity: int
    available_units: Optional[int] = Field(None, ge=0)


class FinalizeRequest(BaseModel):
    """Finalize draft request DTO"""
    hotel_id: str


class SelectionResponse(BaseModel):
    """Selection line response DTO"""
    room_type_id: str
    unit_price: Decimal
    quantity: int
    adults: int
    children: int
    infants: int
    line_total: Decimal


class DraftSummaryResponse(BaseModel):
    """In-progress draft response DTO"""
    session_id: str
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    nights: int
    selections: List[SelectionResponse]
    grand_total: Decimal
    total_guests: int


class ReservationDraftResponse(BaseModel):
    """Finalized draft response DTO"""
    hotel_id: str
    check_in: datetime
    check_out: datetime
    nights: int
    selections: List[SelectionResponse]
    grand_total: Decimal
    currency: str
    total_guests: int
    payload: Dict[str, Any]


class ErrorResponse(BaseModel):
    """Typed error DTO"""
    error_kind: ErrorKind
    message: str


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class SubmitBookingRequest(BaseModel):
    """Submit a session's draft as a booking request DTO"""
    session_id: str
    hotel_id: str
    guest_name: str


class StatusChangeRequest(BaseModel):
    """Status change request DTO"""
    requested_status: BookingStatus

    @field_validator('requested_status', mode='before')
    @classmethod
    def parse_status(cls, v):
        return BookingStatus.parse(v)


class StatusChangeResponse(BaseModel):
    """Applied status change DTO"""
    from_status: str
    to_status: str
    actor: Optional[str] = None
    changed_by: str
    changed_at: datetime


class TransitionResponse(BaseModel):
    """Transition outcome DTO"""
    ok: bool
    current_status: str
    new_status: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    available_actions: List[str]


class BookingResponse(BaseModel):
    """Booking response DTO"""
    booking_id: UUID
    booking_code: str
    hotel_id: str
    guest_name: str
    check_in: datetime
    check_out: datetime
    nights: int
    selections: List[SelectionResponse]
    total_amount: Decimal
    currency: str
    total_guests: int
    status: str
    status_label: str
    history: List[StatusChangeResponse]
    created_at: datetime
    modified_at: datetime
    created_by: str
    version: int


class ActionsResponse(BaseModel):
    """Available actions DTO"""
    booking_id: UUID
    status: str
    actions: List[str]


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class CalendarRequest(BaseModel):
    """Ad hoc calendar request DTO"""
    year: int
    month: int = Field(ge=1, le=12)
    bookings: List[Dict[str, Any]] = []


class CalendarDayResponse(BaseModel):
    """Calendar day DTO"""
    day: date
    booked: bool
    tone: DayTone
    guests: List[str]


class CalendarResponse(BaseModel):
    """Month calendar DTO"""
    year: int
    month: int
    first_weekday_offset: int
    days: List[CalendarDayResponse]


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole
    disabled: bool
