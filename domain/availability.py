"""Availability calendar mapping.

Projects bookings onto a sparse per-day occupancy index. Check-out days
are exclusive: a guest leaving on day D does not occupy D. Bookings
with missing or inverted ranges are skipped so a calendar still renders
when upstream records are incomplete.
"""
import calendar
import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from domain.enums import BookingStatus, DayTone
from domain.errors import InvalidRange
from domain.value_objects import DateRange, parse_instant

logger = logging.getLogger(__name__)

SUNDAY = calendar.SUNDAY

CHECK_IN_KEYS = ("checkIn", "checkInDate", "check_in", "start", "startDate", "from", "arrival", "begin")
CHECK_OUT_KEYS = ("checkOut", "checkOutDate", "check_out", "end", "endDate", "to", "departure", "finish")
# Substrings of a booking status that pick its color hint; "checked" covers
# checked_in and checked_out alike
OCCUPIED_WORDS = ("checked", "occupied")
RESERVED_WORDS = ("approved", "paid", "confirmed", "reserved", "pending")


class DayOccupancyIndex:
    """Sparse mapping of day -> contributing payloads, in insertion order"""

    def __init__(self, days: Optional[Dict[date, List[Any]]] = None):
        self._days: Dict[date, List[Any]] = days if days is not None else {}

    def add(self, day: date, payload: Any) -> None:
        self._days.setdefault(day, []).append(payload)

    def contributors(self, day: date) -> Tuple[Any, ...]:
        return tuple(self._days.get(day, ()))

    def booked_days(self) -> List[date]:
        return sorted(self._days)

    def for_month(self, year: int, month: int) -> "DayOccupancyIndex":
        """Restrict the index to one calendar month"""
        return DayOccupancyIndex({
            d: list(p) for d, p in self._days.items() if d.year == year and d.month == month
        })

    def __contains__(self, day: date) -> bool:
        return bool(self._days.get(day))

    def __len__(self) -> int:
        return len(self._days)


def _as_range(raw: Any) -> Optional[DateRange]:
    if isinstance(raw, DateRange):
        return raw
    try:
        check_in, check_out = raw
        return DateRange.between(check_in, check_out)
    except (InvalidRange, TypeError, ValueError):
        return None


Window = Tuple[date, date]


def build(bookings: Iterable[Tuple[Any, Any]], window: Optional[Window] = None) -> DayOccupancyIndex:
    """Build an occupancy index from (date_range, payload) pairs.

    date_range may be a DateRange or a raw (check_in, check_out) pair.
    window, a half-open (first, stop) pair of dates, limits which days
    are indexed.
    """
    since, until = window if window is not None else (None, None)
    index = DayOccupancyIndex()
    skipped = 0
    for raw_range, payload in bookings:
        date_range = _as_range(raw_range)
        if date_range is None:
            skipped += 1
            logger.debug("Skipping booking with unusable range %r", raw_range)
            continue
        for day in date_range.days(since, until):
            index.add(day, payload)
    if skipped:
        logger.debug("Occupancy index built with %d malformed bookings skipped", skipped)
    return index


def _pick(record: Any, keys: Sequence[str]) -> Any:
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        value = record.get(key)
        if parse_instant(value) is not None:
            return value
    return None


def extract_range(record: Mapping) -> Tuple[Any, Any]:
    """Find raw check-in/check-out values in a loosely shaped booking record"""
    nested = record.get("reservation")
    check_in = _pick(record, CHECK_IN_KEYS) or _pick(nested, CHECK_IN_KEYS)
    check_out = _pick(record, CHECK_OUT_KEYS) or _pick(nested, CHECK_OUT_KEYS)
    return check_in, check_out


def build_from_records(records: Iterable[Mapping], window: Optional[Window] = None) -> DayOccupancyIndex:
    """Build an index from booking records, using each record as its payload"""
    return build(((extract_range(record), record) for record in records), window)


def is_booked(index: DayOccupancyIndex, day: date) -> bool:
    return day in index


def describe_day(index: DayOccupancyIndex, day: date) -> Tuple[Any, ...]:
    return index.contributors(day)


def _room_tone(payload: Mapping) -> Optional[DayTone]:
    # Per-room statuses under details[].reservedRooms[] outrank the booking status
    details = payload.get("details")
    if not isinstance(details, (list, tuple)):
        return None
    for detail in details:
        rooms = detail.get("reservedRooms") if isinstance(detail, Mapping) else None
        if not isinstance(rooms, (list, tuple)):
            continue
        statuses = [room.get("status") for room in rooms if isinstance(room, Mapping)]
        if "Occupied" in statuses:
            return DayTone.OCCUPIED
        if "Reserved" in statuses:
            return DayTone.RESERVED
    return None


def _raw_status(payload: Any) -> str:
    if isinstance(payload, Mapping):
        nested = payload.get("reservation")
        nested_status = nested.get("status") if isinstance(nested, Mapping) else None
        raw = payload.get("status") or nested_status or payload.get("reservationStatus")
    else:
        raw = getattr(payload, "status", None)
    if isinstance(raw, BookingStatus):
        raw = raw.value
    return str(raw or "").lower()


def booking_tone(payload: Any) -> Optional[DayTone]:
    """Color hint for one booking, None when nothing hints at one"""
    if isinstance(payload, Mapping):
        tone = _room_tone(payload)
        if tone is not None:
            return tone
    status = _raw_status(payload)
    if any(word in status for word in OCCUPIED_WORDS):
        return DayTone.OCCUPIED
    if any(word in status for word in RESERVED_WORDS):
        return DayTone.RESERVED
    return None


def day_tone(index: DayOccupancyIndex, day: date) -> DayTone:
    """Color hint for a day: occupied wins over reserved"""
    contributors = index.contributors(day)
    if not contributors:
        return DayTone.FREE
    if any(booking_tone(p) == DayTone.OCCUPIED for p in contributors):
        return DayTone.OCCUPIED
    return DayTone.RESERVED


# ==================== CALENDAR ARITHMETIC ====================

def days_in_month(year: int, month: int) -> List[date]:
    _, count = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, count + 1)]


def first_weekday_offset(year: int, month: int, first_weekday: int = SUNDAY) -> int:
    """Blank cells before day 1 in a grid whose first column is first_weekday"""
    return (calendar.weekday(year, month, 1) - first_weekday) % 7


def month_grid(year: int, month: int, first_weekday: int = SUNDAY) -> List[List[Optional[date]]]:
    """Weeks of seven cells, None for days outside the month"""
    cells: List[Optional[date]] = [None] * first_weekday_offset(year, month, first_weekday)
    cells.extend(days_in_month(year, month))
    cells.extend([None] * (-len(cells) % 7))
    return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def month_window(year: int, month: int) -> Window:
    """Half-open (first day, first day of next month) window for build"""
    days = days_in_month(year, month)
    return days[0], days[-1] + timedelta(days=1)
