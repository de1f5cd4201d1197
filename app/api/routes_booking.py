"""
Booking API routes - commit and look up reservations
"""

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from app.api.deps import enforce_rate_limit, get_booking_engine, get_notifier
from app.schemas.booking import BookingCreate, BookingResponse, BookingResult
from app.services.booking_service import BookingEngine
from app.services.notification_service import BookingNotifier
from app.services.qr_service import QRService
from app.services.repositories import CustomerInfo, ReservationRecord, call_with_retry
from app.utils.responses import not_found_error, success_response
from app.utils.time_window import BookingWindow

logger = logging.getLogger(__name__)

router = APIRouter()

def booking_payload(record: ReservationRecord) -> BookingResponse:
    window = record.window.as_strings()
    return BookingResponse(
        booking_reference=record.booking_reference,
        venue_id=record.venue_id,
        customer_name=record.customer_name,
        booking_date=record.window.booking_date,
        start_time=window["start_time"],
        end_time=window["end_time"],
        party_size=record.party_size,
        status=record.status,
        table_ids=record.table_ids,
        table_numbers=record.table_numbers,
        total_deposit=record.total_deposit,
        total_min_spend=record.total_min_spend,
        occasion=record.occasion,
        created_at=record.created_at
    )

@router.post("", dependencies=[Depends(enforce_rate_limit)])
async def create_booking(
    booking: BookingCreate,
    engine: BookingEngine = Depends(get_booking_engine),
    notifier: BookingNotifier = Depends(get_notifier)
):
    """Claim the selected tables for the window, all or nothing"""
    customer = CustomerInfo(
        name=booking.customer_name,
        email=booking.customer_email,
        phone=booking.customer_phone,
        special_requests=booking.special_requests,
        occasion=booking.occasion
    )
    result = await run_in_threadpool(
        engine.commit_reservation,
        venue_id=booking.venue_id,
        table_ids=booking.table_ids,
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        party_size=booking.party_size,
        customer=customer
    )
    
    window = BookingWindow.build(booking.booking_date, booking.start_time, booking.end_time)
    await notifier.reservations_changed(
        venue_id=booking.venue_id,
        window=window,
        table_ids=result.table_ids,
        status=result.status,
        booking_reference=result.booking_reference
    )
    
    return success_response(
        message="Booking created successfully",
        data=BookingResult(
            booking_id=result.reservation_id,
            booking_reference=result.booking_reference,
            status=result.status,
            table_ids=result.table_ids,
            total_deposit=result.total_deposit,
            total_min_spend=result.total_min_spend
        ),
        status_code=201
    )

@router.get("/{reference}", dependencies=[Depends(enforce_rate_limit)])
def get_booking(
    reference: str,
    engine: BookingEngine = Depends(get_booking_engine)
):
    """Look up a booking by its reference"""
    record = call_with_retry(engine.get_reservation, reference.upper())
    if record is None:
        raise not_found_error("Booking")
    
    return success_response(
        message="Booking retrieved successfully",
        data=booking_payload(record)
    )

@router.get("/{reference}/qr.png")
def get_booking_qr(
    reference: str,
    engine: BookingEngine = Depends(get_booking_engine)
):
    """QR code the customer shows at the door"""
    record = call_with_retry(engine.get_reservation, reference.upper())
    if record is None:
        raise not_found_error("Booking")
    
    qr_bytes = QRService.generate_booking_qr(record.booking_reference)
    
    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=qr_{record.booking_reference}.png"}
    )
