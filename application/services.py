"""Application Services - Business use cases

Services are the boundary of the reservation core: domain errors are
caught here and returned as typed results so callers can choose
user-facing copy from the error kind.
"""
import asyncio
import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel

from domain import availability
from domain.entities import Booking
from domain.enums import BookingStatus, DayTone, ErrorKind, UserRole
from domain.errors import CoreError
from domain.pricing import DraftLine, PricingAggregator, ReservationDraft
from domain.repositories import BookingRepository, DraftRepository
from domain.status_machine import TransitionResult, attempt_transition

logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    """Typed outcome of a service call"""
    ok: bool
    value: Any = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: CoreError) -> "OperationResult":
        return cls(ok=False, error_kind=error.kind, message=error.message)


class DraftSummary(BaseModel):
    """Current state of a session's selections"""
    session_id: str
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    nights: int
    lines: List[DraftLine]
    grand_total: Decimal
    total_guests: int


class CalendarDay(BaseModel):
    day: date
    booked: bool
    tone: DayTone
    guests: List[str]


class MonthCalendar(BaseModel):
    year: int
    month: int
    first_weekday_offset: int
    days: List[CalendarDay]


def _summarize(session_id: str, aggregator: PricingAggregator) -> DraftSummary:
    nights = aggregator.nights()
    date_range = aggregator.date_range
    return DraftSummary(
        session_id=session_id,
        check_in=date_range.check_in if date_range else None,
        check_out=date_range.check_out if date_range else None,
        nights=nights,
        lines=[DraftLine(selection=s, line_total=s.line_total(nights)) for s in aggregator.selections],
        grand_total=aggregator.grand_total(),
        total_guests=aggregator.total_guests(),
    )


class DraftService:
    """Service for in-progress room selections, one aggregator per session"""

    def __init__(self, repository: DraftRepository):
        self.repository = repository
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def set_dates(self, session_id: str, check_in: Any, check_out: Any) -> OperationResult:
        """Set the stay dates for a session"""
        async with self._locks[session_id]:
            aggregator = await self.repository.get_or_create(session_id)
            try:
                aggregator.set_dates(check_in, check_out)
            except CoreError as e:
                logger.warning("Session %s: rejected dates (%s)", session_id, e.kind.value)
                return OperationResult.failure(e)
            return OperationResult.success(_summarize(session_id, aggregator))

    async def add_selection(
        self,
        session_id: str,
        room_type_id: str,
        unit_price: Any,
        quantity: int,
        adults: int,
        children: int = 0,
        infants: int = 0,
        available_units: Optional[int] = None,
    ) -> OperationResult:
        """Add a room type to the session, merging with an existing line"""
        async with self._locks[session_id]:
            aggregator = await self.repository.get_or_create(session_id)
            try:
                aggregator.add_or_merge_selection(
                    room_type_id=room_type_id,
                    unit_price=unit_price,
                    quantity=quantity,
                    adults=adults,
                    children=children,
                    infants=infants,
                    available_units=available_units,
                )
            except CoreError as e:
                logger.warning("Session %s: rejected selection %s (%s)", session_id, room_type_id, e.kind.value)
                return OperationResult.failure(e)
            return OperationResult.success(_summarize(session_id, aggregator))

    async def set_quantity(
        self,
        session_id: str,
        room_type_id: str,
        quantity: int,
        available_units: Optional[int] = None,
    ) -> Optional[OperationResult]:
        """Change the quantity of a selected room type"""
        if await self.repository.find(session_id) is None:
            return None
        async with self._locks[session_id]:
            aggregator = await self.repository.find(session_id)
            if aggregator is None:
                return None
            try:
                aggregator.set_quantity(room_type_id, quantity, available_units)
            except CoreError as e:
                return OperationResult.failure(e)
            return OperationResult.success(_summarize(session_id, aggregator))

    async def remove_selection(self, session_id: str, room_type_id: str) -> Optional[DraftSummary]:
        """Remove a room type; removing one that is not selected is a no-op"""
        if await self.repository.find(session_id) is None:
            return None
        async with self._locks[session_id]:
            aggregator = await self.repository.find(session_id)
            if aggregator is None:
                return None
            aggregator.remove_selection(room_type_id)
            return _summarize(session_id, aggregator)

    async def get_summary(self, session_id: str) -> Optional[DraftSummary]:
        """Get the session's selections and totals"""
        aggregator = await self.repository.find(session_id)
        if aggregator is None:
            return None
        return _summarize(session_id, aggregator)

    async def finalize(self, session_id: str, hotel_id: str) -> Optional[OperationResult]:
        """Snapshot the session into an immutable draft"""
        if await self.repository.find(session_id) is None:
            return None
        async with self._locks[session_id]:
            aggregator = await self.repository.find(session_id)
            if aggregator is None:
                return None
            try:
                draft = aggregator.finalize(hotel_id)
            except CoreError as e:
                logger.warning("Session %s: cannot finalize (%s)", session_id, e.kind.value)
                return OperationResult.failure(e)
            logger.info(
                "Session %s: finalized draft for hotel %s, %d lines, total %s",
                session_id, hotel_id, len(draft.lines), draft.grand_total,
            )
            return OperationResult.success(draft)

    async def discard(self, session_id: str) -> bool:
        """Forget a session once its draft has been persisted"""
        async with self._locks[session_id]:
            discarded = await self.repository.discard(session_id)
        self._locks.pop(session_id, None)
        return discarded


class BookingService:
    """Service for persisted bookings and their status lifecycle"""

    def __init__(self, repository: BookingRepository, draft_service: Optional[DraftService] = None):
        self.repository = repository
        self.draft_service = draft_service

    async def create_from_draft(self, draft: ReservationDraft, guest_name: str, created_by: str = "SYSTEM") -> Booking:
        """Persist a finalized draft as a pending booking"""
        booking = Booking.from_draft(draft, guest_name=guest_name, created_by=created_by)
        await self.repository.save(booking)
        logger.info("Booking %s created for hotel %s", booking.booking_code, booking.hotel_id)
        return booking

    async def submit(
        self,
        session_id: str,
        hotel_id: str,
        guest_name: str,
        created_by: str = "SYSTEM",
    ) -> Optional[OperationResult]:
        """Finalize a session's selections and persist them as a booking"""
        if self.draft_service is None:
            raise RuntimeError("BookingService was created without a DraftService")
        result = await self.draft_service.finalize(session_id, hotel_id)
        if result is None or not result.ok:
            return result
        booking = await self.create_from_draft(result.value, guest_name, created_by)
        await self.draft_service.discard(session_id)
        return OperationResult.success(booking)

    async def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        """Get booking by ID"""
        return await self.repository.find_by_id(booking_id)

    async def get_all_bookings(self) -> List[Booking]:
        """Get all bookings"""
        return await self.repository.find_all()

    async def available_actions(
        self,
        booking_id: UUID,
        actor: Optional[UserRole] = None,
    ) -> Optional[FrozenSet[BookingStatus]]:
        """Statuses the actor may move the booking to next"""
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            return None
        return booking.available_actions(actor)

    async def change_status(
        self,
        booking_id: UUID,
        requested: BookingStatus,
        actor: Optional[UserRole] = None,
        changed_by: str = "SYSTEM",
    ) -> Optional[TransitionResult]:
        """Apply a status change if the state machine allows it"""
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            return None

        result = attempt_transition(booking.status, requested, actor)
        if not result.ok:
            logger.warning(
                "Booking %s: %s → %s refused (%s)",
                booking.booking_code, booking.status.value, BookingStatus.parse(requested).value, result.error_kind.value,
            )
            return result

        booking.transition_to(result.new_status, actor=actor, changed_by=changed_by)
        await self.repository.update(booking)
        logger.info(
            "Booking %s: %s → %s by %s",
            booking.booking_code, result.current_status.value, result.new_status.value, changed_by,
        )
        return result


def _guest_label(payload: Any) -> str:
    if isinstance(payload, Booking):
        return payload.guest_name
    if isinstance(payload, Mapping):
        for key in ("guestName", "guest_name", "name"):
            if payload.get(key):
                return str(payload[key])
        return "Guest"
    return str(payload)


class AvailabilityService:
    """Service for occupancy calendars"""

    def __init__(self, repository: BookingRepository, first_weekday: int = availability.SUNDAY):
        self.repository = repository
        self.first_weekday = first_weekday

    def render_month(self, index: availability.DayOccupancyIndex, year: int, month: int) -> MonthCalendar:
        """Lay out one month of an occupancy index"""
        days = [
            CalendarDay(
                day=day,
                booked=availability.is_booked(index, day),
                tone=availability.day_tone(index, day),
                guests=[_guest_label(p) for p in availability.describe_day(index, day)],
            )
            for day in availability.days_in_month(year, month)
        ]
        return MonthCalendar(
            year=year,
            month=month,
            first_weekday_offset=availability.first_weekday_offset(year, month, self.first_weekday),
            days=days,
        )

    async def hotel_calendar(self, hotel_id: str, year: int, month: int) -> MonthCalendar:
        """Calendar for a hotel from its stored bookings"""
        bookings = await self.repository.find_by_hotel(hotel_id)
        index = availability.build(
            ((b.date_range, b) for b in bookings if b.occupies()),
            availability.month_window(year, month),
        )
        return self.render_month(index, year, month)

    def calendar_for_records(self, records: Iterable[Mapping], year: int, month: int) -> MonthCalendar:
        """Calendar for a caller-supplied booking list"""
        index = availability.build_from_records(records, availability.month_window(year, month))
        return self.render_month(index, year, month)
