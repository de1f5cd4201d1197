"""
Booking-related Pydantic schemas
"""

from datetime import date, datetime, timedelta
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.config import settings

class BookingCreate(BaseModel):
    """Schema for committing a booking"""
    venue_id: int
    table_ids: List[int] = Field(..., min_length=1)
    booking_date: date
    start_time: str
    end_time: str
    party_size: int
    customer_name: str = Field(..., min_length=2)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=10)
    special_requests: Optional[str] = None
    occasion: Optional[str] = None
    
    @field_validator("party_size")
    @classmethod
    def party_size_in_range(cls, value: int) -> int:
        if value < 1 or value > settings.MAX_PARTY_SIZE:
            raise ValueError(f"Party size must be between 1 and {settings.MAX_PARTY_SIZE}")
        return value
    
    @field_validator("booking_date")
    @classmethod
    def booking_date_bookable(cls, value: date) -> date:
        today = date.today()
        if value < today:
            raise ValueError("Booking date must be in the future")
        if value > today + timedelta(days=settings.MAX_ADVANCE_DAYS):
            raise ValueError("Bookings can only be made up to 6 months in advance")
        return value
    
    @field_validator("customer_name", "customer_phone")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

class BookingResult(BaseModel):
    """Outcome of a successful commit"""
    booking_id: int
    booking_reference: str
    status: str
    table_ids: List[int]
    total_deposit: float
    total_min_spend: float

class BookingResponse(BaseModel):
    """Booking details"""
    booking_reference: str
    venue_id: int
    customer_name: str
    booking_date: date
    start_time: str
    end_time: str
    party_size: int
    status: str
    table_ids: List[int]
    table_numbers: List[str]
    total_deposit: float
    total_min_spend: float
    occasion: Optional[str] = None
    created_at: Optional[datetime] = None

class StatusUpdate(BaseModel):
    """Booking lifecycle change"""
    status: str
