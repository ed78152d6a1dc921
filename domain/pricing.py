"""Room selection and pricing aggregation.

A PricingAggregator belongs to one booking session. It is not safe for
concurrent mutation; callers serialize access per session.
"""
from collections import OrderedDict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from domain.errors import (
    EmptySelection, InvalidOccupants, InvalidQuantity, NoDateRange,
    QuantityExceeded, UnknownSelection,
)
from domain.value_objects import DateRange, RoomTypeSelection, to_money

MAX_ROOMS_PER_TYPE = 4


class DraftLine(BaseModel):
    """Priced selection line inside a draft"""
    selection: RoomTypeSelection
    line_total: Decimal

    class Config:
        frozen = True


class ReservationDraft(BaseModel):
    """Immutable snapshot of a priced, not yet persisted reservation"""
    hotel_id: str
    date_range: DateRange
    nights: int
    lines: Tuple[DraftLine, ...]
    grand_total: Decimal
    currency: str = "VND"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @property
    def selections(self) -> Tuple[RoomTypeSelection, ...]:
        return tuple(line.selection for line in self.lines)

    @property
    def total_guests(self) -> int:
        return sum(line.selection.guests for line in self.lines)

    def to_payload(self) -> Dict[str, Any]:
        """Render the booking-creation request body"""
        return {
            "hotelId": self.hotel_id,
            "checkInDate": self.date_range.check_in.isoformat(),
            "checkOutDate": self.date_range.check_out.isoformat(),
            "numberOfGuests": self.total_guests,
            "rooms": [
                {
                    "roomTypeId": s.room_type_id,
                    "quantity": s.quantity,
                    "adults": s.adults,
                    "children": s.children,
                    "infants": s.infants,
                }
                for s in self.selections
            ],
        }


class PricingAggregator:
    """Accumulates room-type selections against a date range"""

    def __init__(self, max_per_type: int = MAX_ROOMS_PER_TYPE, currency: str = "VND"):
        self.max_per_type = max_per_type
        self.currency = currency
        self._selections: "OrderedDict[str, RoomTypeSelection]" = OrderedDict()
        self._date_range: Optional[DateRange] = None

    @classmethod
    def resume(cls, draft: ReservationDraft, max_per_type: int = MAX_ROOMS_PER_TYPE) -> "PricingAggregator":
        """Rebuild an editable aggregator from a finalized draft"""
        aggregator = cls(max_per_type=max_per_type, currency=draft.currency)
        aggregator._date_range = draft.date_range
        for selection in draft.selections:
            aggregator._selections[selection.room_type_id] = selection
        return aggregator

    # ==================== DATE RANGE ====================
    @property
    def date_range(self) -> Optional[DateRange]:
        return self._date_range

    def set_date_range(self, date_range: DateRange) -> None:
        # Re-validate: a range may have been built without the factory
        self._date_range = DateRange.between(date_range.check_in, date_range.check_out)

    def set_dates(self, check_in: Any, check_out: Any) -> None:
        """Set the range from raw values"""
        self._date_range = DateRange.between(check_in, check_out)

    def nights(self) -> int:
        """Nights multiplier; one night until a range is chosen"""
        if self._date_range is None:
            return 1
        return self._date_range.nights()

    # ==================== SELECTIONS ====================
    @property
    def selections(self) -> Tuple[RoomTypeSelection, ...]:
        return tuple(self._selections.values())

    def get(self, room_type_id: str) -> Optional[RoomTypeSelection]:
        return self._selections.get(room_type_id)

    def add_or_merge_selection(
        self,
        room_type_id: str,
        unit_price: Any,
        quantity: int,
        adults: int,
        children: int = 0,
        infants: int = 0,
        available_units: Optional[int] = None,
    ) -> RoomTypeSelection:
        """Add a room type, or add more of one already selected.

        Merging sums quantities and replaces occupant counts with the
        latest values; the unit price chosen first is kept.
        """
        _validate_occupants(adults, children, infants)
        price = to_money(unit_price)
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1")

        existing = self._selections.get(room_type_id)
        if existing is not None:
            price = existing.unit_price
            quantity = existing.quantity + quantity

        self._check_available(quantity, available_units)
        selection = RoomTypeSelection(
            room_type_id=room_type_id,
            unit_price=price,
            quantity=min(quantity, self._cap(available_units)),
            adults=adults,
            children=children,
            infants=infants,
        )
        # Updating an existing key keeps its position
        self._selections[room_type_id] = selection
        return selection

    def set_quantity(self, room_type_id: str, quantity: int, available_units: Optional[int] = None) -> RoomTypeSelection:
        """Replace the quantity of an existing line"""
        existing = self._selections.get(room_type_id)
        if existing is None:
            raise UnknownSelection(f"Room type {room_type_id} is not selected")
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1")
        self._check_available(quantity, available_units)
        selection = existing.model_copy(update={"quantity": min(quantity, self._cap(available_units))})
        self._selections[room_type_id] = selection
        return selection

    def remove_selection(self, room_type_id: str) -> None:
        self._selections.pop(room_type_id, None)

    # ==================== TOTALS ====================
    def line_total(self, room_type_id: str) -> Decimal:
        selection = self._selections.get(room_type_id)
        if selection is None:
            raise UnknownSelection(f"Room type {room_type_id} is not selected")
        return selection.line_total(self.nights())

    def grand_total(self) -> Decimal:
        nights = self.nights()
        return sum((s.line_total(nights) for s in self._selections.values()), Decimal("0"))

    def total_guests(self) -> int:
        return sum(s.guests for s in self._selections.values())

    # ==================== FINALIZE ====================
    def finalize(self, hotel_id: str) -> ReservationDraft:
        """Snapshot the current state into an immutable draft"""
        if self._date_range is None:
            raise NoDateRange("Choose check-in and check-out dates first")
        if not self._selections:
            raise EmptySelection("Select at least one room type")

        nights = self.nights()
        lines = tuple(
            DraftLine(selection=s, line_total=s.line_total(nights))
            for s in self._selections.values()
        )
        return ReservationDraft(
            hotel_id=hotel_id,
            date_range=self._date_range,
            nights=nights,
            lines=lines,
            grand_total=sum((line.line_total for line in lines), Decimal("0")),
            currency=self.currency,
        )

    # ==================== PRIVATE ====================
    def _cap(self, available_units: Optional[int]) -> int:
        if available_units is None:
            return self.max_per_type
        return min(self.max_per_type, available_units)

    @staticmethod
    def _check_available(quantity: int, available_units: Optional[int]) -> None:
        if available_units is not None and quantity > available_units:
            raise QuantityExceeded(
                f"Requested {quantity} rooms but only {available_units} available"
            )


def _validate_occupants(adults: int, children: int, infants: int) -> None:
    if adults < 1:
        raise InvalidOccupants("At least 1 adult is required")
    if children < 0 or infants < 0:
        raise InvalidOccupants("Children and infants cannot be negative")
