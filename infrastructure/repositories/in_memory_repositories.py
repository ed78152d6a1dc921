"""In-Memory Repository Implementations"""
from typing import Callable, Optional, List, Dict
from uuid import UUID

from domain.repositories import DraftRepository, BookingRepository
from domain.entities import Booking
from domain.pricing import PricingAggregator


class InMemoryDraftRepository(DraftRepository):
    """In-memory implementation of DraftRepository"""

    def __init__(self, factory: Callable[[], PricingAggregator] = PricingAggregator):
        self._factory = factory
        self._storage: Dict[str, PricingAggregator] = {}

    async def get_or_create(self, session_id: str) -> PricingAggregator:
        """Find the session's aggregator, creating an empty one if absent"""
        aggregator = self._storage.get(session_id)
        if aggregator is None:
            aggregator = self._factory()
            self._storage[session_id] = aggregator
        return aggregator

    async def find(self, session_id: str) -> Optional[PricingAggregator]:
        """Find the session's aggregator"""
        return self._storage.get(session_id)

    async def discard(self, session_id: str) -> bool:
        """Drop the session's aggregator"""
        return self._storage.pop(session_id, None) is not None


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of BookingRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Booking] = {}

    async def save(self, booking: Booking) -> Booking:
        """Save booking to memory"""
        self._storage[booking.booking_id] = booking
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        return self._storage.get(booking_id)

    async def find_by_hotel(self, hotel_id: str) -> List[Booking]:
        """Find bookings for a hotel"""
        return [b for b in self._storage.values() if b.hotel_id == hotel_id]

    async def find_all(self) -> List[Booking]:
        """Find all bookings"""
        return list(self._storage.values())

    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        if booking.booking_id in self._storage:
            self._storage[booking.booking_id] = booking
            return booking
        raise ValueError("Booking not found")
