"""
Public API routes - no authentication required
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.api.deps import enforce_rate_limit, get_booking_engine
from app.schemas.table import (
    Recommendation,
    RecommendationResponse,
    TableAvailability,
    TableCounts,
    TableListResponse,
)
from app.services.booking_service import BookingEngine
from app.services.repositories import call_with_retry
from app.utils.responses import not_found_error, success_response
from app.utils.time_window import BookingWindow, default_window, parse_date, venue_hours

router = APIRouter()

def _window_for(booking_date: str, start_time: Optional[str], end_time: Optional[str]) -> BookingWindow:
    """Requested window, falling back to the night's opening hours"""
    opening = default_window(parse_date(booking_date))
    return BookingWindow.build(
        opening.booking_date,
        start_time or opening.start_time,
        end_time or opening.end_time
    )

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/venues/{slug}", dependencies=[Depends(enforce_rate_limit)])
def get_venue(
    slug: str,
    booking_date: Optional[date] = Query(None, alias="date"),
    engine: BookingEngine = Depends(get_booking_engine)
):
    """Look up a venue and its opening hours for a night"""
    venue = call_with_retry(engine.store.get_venue_by_slug, slug)
    if venue is None:
        raise not_found_error("Venue")
    
    day = booking_date or date.today()
    return success_response(
        message="Venue retrieved successfully",
        data={
            "id": venue.id,
            "name": venue.name,
            "slug": venue.slug,
            "booking_date": day.isoformat(),
            "hours": venue_hours(day)
        }
    )

@router.get("/venues/{venue_id}/tables", dependencies=[Depends(enforce_rate_limit)])
def list_tables(
    venue_id: int,
    booking_date: str = Query(..., alias="date"),
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    location: Optional[str] = None,
    engine: BookingEngine = Depends(get_booking_engine)
):
    """All tables of a venue with their availability for the window"""
    window = _window_for(booking_date, start_time, end_time)
    rows = call_with_retry(
        engine.table_availability,
        venue_id, window.booking_date, window.start_time, window.end_time, location
    )
    
    tables = [
        TableAvailability(
            id=table.id,
            number=table.table_number,
            display_name=table.label,
            location=table.location,
            min_capacity=table.min_capacity,
            max_capacity=table.max_capacity,
            preferred_capacity=table.preferred_capacity,
            is_premium=table.is_premium,
            is_booth=table.is_booth,
            min_spend=table.min_spend,
            deposit_required=table.deposit_required,
            is_available=is_available
        )
        for table, is_available in rows
    ]
    counts = TableCounts(
        total=len(tables),
        upstairs=sum(1 for t in tables if t.location == "upstairs"),
        downstairs=sum(1 for t in tables if t.location == "downstairs"),
        available=sum(1 for t in tables if t.is_available)
    )
    
    payload = TableListResponse(
        venue_id=venue_id,
        tables=tables,
        counts=counts,
        **window.as_strings()
    )
    return success_response(message="Tables retrieved successfully", data=payload)

@router.get("/venues/{venue_id}/recommendations", dependencies=[Depends(enforce_rate_limit)])
def get_recommendations(
    venue_id: int,
    party_size: int,
    booking_date: str = Query(..., alias="date"),
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    location: Optional[str] = None,
    engine: BookingEngine = Depends(get_booking_engine)
):
    """Ranked ways of seating a party for the window"""
    window = _window_for(booking_date, start_time, end_time)
    ranked = call_with_retry(
        engine.recommend,
        venue_id, window.booking_date, window.start_time, window.end_time, party_size, location
    )
    
    recommendations = [
        Recommendation(
            rank=position,
            score=item.score,
            label=item.label,
            reasons=item.reasons,
            combination_id=item.candidate.combination_id,
            combination_type=item.candidate.combination_type,
            table_ids=list(item.candidate.table_ids),
            table_numbers=list(item.candidate.table_numbers),
            location=item.candidate.location,
            min_capacity=item.candidate.min_capacity,
            total_capacity=item.candidate.capacity,
            total_min_spend=item.candidate.total_min_spend,
            total_deposit=item.candidate.total_deposit,
            is_optimal=item.candidate.is_optimal
        )
        for position, item in enumerate(ranked, start=1)
    ]
    
    payload = RecommendationResponse(
        venue_id=venue_id,
        party_size=party_size,
        has_candidates=bool(recommendations),
        recommendations=recommendations,
        **window.as_strings()
    )
    message = "Recommendations retrieved successfully" if recommendations else "No tables can seat this party"
    return success_response(message=message, data=payload)
