"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID

from domain.entities import Booking
from domain.pricing import PricingAggregator


class DraftRepository(ABC):
    """Repository interface for in-progress selections, keyed by session"""

    @abstractmethod
    async def get_or_create(self, session_id: str) -> PricingAggregator:
        """Find the session's aggregator, creating an empty one if absent"""
        pass

    @abstractmethod
    async def find(self, session_id: str) -> Optional[PricingAggregator]:
        """Find the session's aggregator"""
        pass

    @abstractmethod
    async def discard(self, session_id: str) -> bool:
        """Drop the session's aggregator"""
        pass


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate"""

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Save booking"""
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_by_hotel(self, hotel_id: str) -> List[Booking]:
        """Find bookings for a hotel"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Booking]:
        """Find all bookings"""
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        pass
