"""
Booking window helpers

A window is a half-open interval anchored to its booking date. An end time
earlier than the start time means the window runs past midnight into the
next calendar day, e.g. 23:00-06:00 on a Friday ends 06:00 Saturday.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Tuple, Union

from app.core.errors import InvalidRequest

TimeLike = Union[str, time]
DateLike = Union[str, date]

_CLOCK_FORMATS = ("%H:%M", "%H:%M:%S")


def parse_clock(value: TimeLike) -> time:
    """Parse HH:MM or HH:MM:SS into a time"""
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, str):
        for fmt in _CLOCK_FORMATS:
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise InvalidRequest(f"Invalid time '{value}', expected HH:MM")


def parse_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidRequest(f"Invalid date '{value}', expected YYYY-MM-DD")


@dataclass(frozen=True)
class BookingWindow:
    booking_date: date
    start_time: time
    end_time: time

    def __post_init__(self):
        if self.start_time == self.end_time:
            raise InvalidRequest("Booking window must have a positive duration")

    @classmethod
    def build(cls, booking_date: DateLike, start_time: TimeLike, end_time: TimeLike) -> "BookingWindow":
        return cls(parse_date(booking_date), parse_clock(start_time), parse_clock(end_time))

    @property
    def wraps_midnight(self) -> bool:
        return self.end_time < self.start_time

    @property
    def start(self) -> datetime:
        return datetime.combine(self.booking_date, self.start_time)

    @property
    def end(self) -> datetime:
        end_date = self.booking_date + timedelta(days=1) if self.wraps_midnight else self.booking_date
        return datetime.combine(end_date, self.end_time)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "BookingWindow") -> bool:
        return self.start < other.end and other.start < self.end

    @property
    def calendar_days(self) -> Tuple[date, ...]:
        """Calendar dates this window occupies at least one instant of"""
        last = (self.end - timedelta(microseconds=1)).date()
        days = [self.booking_date]
        if last != self.booking_date:
            days.append(last)
        return tuple(days)

    @property
    def neighbour_dates(self) -> List[date]:
        """Booking dates whose windows could overlap this one"""
        return [self.booking_date + timedelta(days=offset) for offset in (-1, 0, 1)]

    def as_strings(self) -> dict:
        return {
            "booking_date": self.booking_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
        }


def venue_hours(day: date) -> dict:
    """Opening hours for the night starting on `day`"""
    weekday = day.weekday()
    if weekday in (4, 5):  # Friday, Saturday
        return {"open": "23:00", "close": "06:00", "is_late_night": True}
    if weekday == 6:
        return {"open": "23:00", "close": "05:00", "is_late_night": True}
    return {"open": "20:00", "close": "02:00", "is_late_night": False}


def default_window(day: date) -> BookingWindow:
    hours = venue_hours(day)
    return BookingWindow.build(day, hours["open"], hours["close"])
