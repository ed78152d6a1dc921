"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone
from typing import Optional, List, Tuple
from decimal import Decimal
import random
import string

from domain.enums import BookingStatus, UserRole
from domain.pricing import DraftLine, ReservationDraft
from domain.status_machine import assert_transition, available_actions, is_terminal
from domain.value_objects import DateRange


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StatusChange(BaseModel):
    """Child Entity recording one applied transition"""
    from_status: BookingStatus
    to_status: BookingStatus
    actor: Optional[UserRole] = None
    changed_by: str = "SYSTEM"
    changed_at: datetime = Field(default_factory=_now)

    class Config:
        frozen = True


class Booking(BaseModel):
    """Booking Aggregate Root Entity"""

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)
    booking_code: str

    # References to other contexts
    hotel_id: str
    guest_name: str

    # Value Objects
    date_range: DateRange
    nights: int
    lines: Tuple[DraftLine, ...]
    total_amount: Decimal
    currency: str

    # Status
    status: BookingStatus = BookingStatus.PENDING
    history: List[StatusChange] = []

    # Metadata
    created_at: datetime = Field(default_factory=_now)
    modified_at: datetime = Field(default_factory=_now)
    created_by: str = "SYSTEM"
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def from_draft(draft: ReservationDraft, guest_name: str, created_by: str = "SYSTEM") -> "Booking":
        """Persistable booking from a finalized draft, starting as pending"""
        return Booking(
            booking_code=Booking._generate_booking_code(),
            hotel_id=draft.hotel_id,
            guest_name=guest_name,
            date_range=draft.date_range,
            nights=draft.nights,
            lines=draft.lines,
            total_amount=draft.grand_total,
            currency=draft.currency,
            created_by=created_by,
        )

    # ==================== STATE TRANSITION METHODS ====================
    def transition_to(
        self,
        requested: BookingStatus,
        actor: Optional[UserRole] = None,
        changed_by: str = "SYSTEM",
    ) -> BookingStatus:
        """Apply a status change allowed by the state machine"""
        new_status = assert_transition(self.status, requested, actor)
        self.history.append(StatusChange(
            from_status=self.status,
            to_status=new_status,
            actor=actor,
            changed_by=changed_by,
        ))
        self.status = new_status
        self.modified_at = _now()
        self.version += 1
        return new_status

    # ==================== QUERY METHODS ====================
    def available_actions(self, actor: Optional[UserRole] = None):
        return available_actions(self.status, actor)

    def is_closed(self) -> bool:
        return is_terminal(self.status)

    def total_guests(self) -> int:
        return sum(line.selection.guests for line in self.lines)

    def occupies(self) -> bool:
        """Rejected bookings never hold a calendar day"""
        return self.status != BookingStatus.REJECTED

    # ==================== PRIVATE ====================
    @staticmethod
    def _generate_booking_code() -> str:
        """Generate booking code"""
        return ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))
