"""
Shared dependencies for API routes
"""

from fastapi import Request

from app.api.ws import websocket_manager
from app.core.db import SessionLocal
from app.services.booking_service import BookingEngine
from app.services.notification_service import BookingNotifier
from app.services.repositories import SqlReservationStore
from app.utils.responses import rate_limit_error
from app.utils.security import get_client_ip, rate_limit_check

# One engine per process so every request shares the same table locks
booking_engine = BookingEngine(SqlReservationStore(SessionLocal))

notifier = BookingNotifier(websocket_manager)

def get_booking_engine() -> BookingEngine:
    return booking_engine

def get_notifier() -> BookingNotifier:
    return notifier

def enforce_rate_limit(request: Request):
    """Reject clients over the per-minute request budget"""
    client_ip = get_client_ip(request)
    if not rate_limit_check(client_ip):
        raise rate_limit_error()
