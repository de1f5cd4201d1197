"""
Admin API routes - requires venue staff token
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_booking_engine, get_notifier
from app.api.routes_booking import booking_payload
from app.schemas.booking import StatusUpdate
from app.services.booking_service import BookingEngine
from app.services.excel_service import ExcelService
from app.services.notification_service import BookingNotifier
from app.services.repositories import call_with_retry
from app.utils.responses import not_found_error, success_response
from app.utils.security import verify_admin_token

router = APIRouter()

@router.patch("/bookings/{reference}/status")
async def update_booking_status(
    reference: str,
    update: StatusUpdate,
    engine: BookingEngine = Depends(get_booking_engine),
    notifier: BookingNotifier = Depends(get_notifier),
    token: str = Depends(verify_admin_token)
):
    """Move a booking through its lifecycle"""
    record = await run_in_threadpool(engine.update_status, reference.upper(), update.status)
    if record is None:
        raise not_found_error("Booking")
    
    # Cancelled and finished bookings free their tables
    await notifier.reservations_changed(
        venue_id=record.venue_id,
        window=record.window,
        table_ids=record.table_ids,
        status=record.status,
        booking_reference=record.booking_reference
    )
    
    return success_response(
        message=f"Booking {record.status}",
        data=booking_payload(record)
    )

@router.get("/venues/{venue_id}/door-list.xlsx")
def export_door_list(
    venue_id: int,
    booking_date: date = Query(..., alias="date"),
    engine: BookingEngine = Depends(get_booking_engine),
    token: str = Depends(verify_admin_token)
):
    """Download the night's active bookings for door staff"""
    venue = call_with_retry(engine.store.get_venue, venue_id)
    if venue is None:
        raise not_found_error("Venue")
    
    reservations = call_with_retry(engine.list_reservations, venue_id, booking_date)
    excel_bytes = ExcelService.export_door_list(reservations)
    
    return Response(
        content=excel_bytes,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=door_list_{venue.slug}_{booking_date.isoformat()}.xlsx"}
    )
