"""Domain Value Objects"""
from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, Mapping, Optional

from domain.errors import InvalidPrice, InvalidRange

ONE_DAY = timedelta(days=1)


def parse_instant(value: Any) -> Optional[datetime]:
    """Coerce a raw check-in/check-out value into a datetime.

    Accepts datetimes, dates (midnight), ISO-8601 strings, epoch
    milliseconds, and the extended-JSON wrappers document stores emit
    ({"$date": ...}, {"$numberLong": ...}, {"$value": ...}).
    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return parse_instant(int(text))
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    if isinstance(value, Mapping):
        for key in ("$date", "$numberLong", "$value"):
            if key in value:
                inner = value[key]
                if key == "$numberLong":
                    try:
                        inner = int(inner)
                    except (TypeError, ValueError):
                        return None
                return parse_instant(inner)
    return None


def to_money(value: Any) -> Decimal:
    """Convert a raw price into an exact Decimal"""
    if isinstance(value, Mapping) and "$numberDecimal" in value:
        value = value["$numberDecimal"]
    if isinstance(value, bool):
        raise InvalidPrice(f"Invalid price: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # repr keeps the shortest decimal form, so 0.1 stays 0.1
        amount = Decimal(repr(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidPrice(f"Invalid price: {value!r}")
    if not amount.is_finite():
        raise InvalidPrice(f"Invalid price: {value!r}")
    if amount < 0:
        raise InvalidPrice("Unit price must not be negative")
    return amount


def _align_timezones(check_in: datetime, check_out: datetime):
    # Naive values are read as UTC when compared with aware ones
    if (check_in.tzinfo is None) != (check_out.tzinfo is None):
        if check_in.tzinfo is None:
            check_in = check_in.replace(tzinfo=timezone.utc)
        else:
            check_out = check_out.replace(tzinfo=timezone.utc)
    return check_in, check_out


class DateRange(BaseModel):
    """Value Object for a stay: check-in and check-out instants"""
    check_in: datetime
    check_out: datetime

    class Config:
        frozen = True

    @field_validator('check_in', 'check_out', mode='before')
    @classmethod
    def coerce_instant(cls, v):
        parsed = parse_instant(v)
        if parsed is None:
            raise ValueError(f'Unrecognised date value: {v!r}')
        return parsed

    @field_validator('check_out')
    @classmethod
    def check_out_after_check_in(cls, v, info):
        check_in = info.data.get('check_in')
        if check_in is not None:
            check_in, v = _align_timezones(check_in, v)
            if v <= check_in:
                raise ValueError('Check-out must be after check-in')
        return v

    @classmethod
    def between(cls, check_in: Any, check_out: Any) -> "DateRange":
        """Build a range from raw values, raising InvalidRange on bad input"""
        start = parse_instant(check_in)
        end = parse_instant(check_out)
        if start is None or end is None:
            raise InvalidRange("Check-in and check-out must be valid dates")
        start, end = _align_timezones(start, end)
        if end <= start:
            raise InvalidRange("Check-out must be after check-in")
        return cls(check_in=start, check_out=end)

    def nights(self) -> int:
        """Number of nights, rounded up and never less than one"""
        check_in, check_out = _align_timezones(self.check_in, self.check_out)
        whole, rest = divmod(check_out - check_in, ONE_DAY)
        if rest:
            whole += 1
        return max(1, whole)

    def days(self, since: Optional[date] = None, until: Optional[date] = None) -> Iterator[date]:
        """Calendar days occupied: check-in day up to, not including, check-out day.

        since/until clip the result to the half-open window [since, until).
        """
        first = self.check_in.date()
        last = self.check_out.date()
        if last <= first:
            # Sub-day stays still occupy the arrival day
            last = first + ONE_DAY
        if since is not None and since > first:
            first = since
        if until is not None and until < last:
            last = until
        current = first
        while current < last:
            yield current
            current += ONE_DAY


class RoomTypeSelection(BaseModel):
    """Value Object for one room type line in a reservation"""
    room_type_id: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)
    infants: int = Field(ge=0, default=0)

    class Config:
        frozen = True

    @property
    def guests(self) -> int:
        return self.adults + self.children + self.infants

    def line_total(self, nights: int) -> Decimal:
        return self.unit_price * self.quantity * nights
