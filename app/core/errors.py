"""
Booking error taxonomy

Every failure the booking engine can report derives from BookingError so the
API layer can render it with one exception handler.
"""

from typing import Iterable, List, Optional


class BookingError(Exception):
    """Base class for booking engine failures"""

    error_code = "booking_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidRequest(BookingError):
    """Malformed window, bad party size, unknown venue or tables"""

    error_code = "invalid_request"
    status_code = 422


class ConflictError(BookingError):
    """One or more requested tables were claimed by an overlapping reservation"""

    error_code = "table_conflict"
    status_code = 409

    def __init__(self, table_ids: Iterable[int], message: Optional[str] = None):
        self.table_ids: List[int] = sorted(set(table_ids))
        super().__init__(
            message or f"Tables no longer available: {', '.join(str(t) for t in self.table_ids)}",
            details={"table_ids": self.table_ids},
        )


class CommitTimeout(BookingError):
    """Exclusive access to the requested tables could not be obtained in time"""

    error_code = "commit_timeout"
    status_code = 503
    retryable = True


class StoreUnavailable(BookingError):
    """The reservation store could not be reached or timed out"""

    error_code = "store_unavailable"
    status_code = 503
    retryable = True
