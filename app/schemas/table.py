"""
Table and recommendation schemas
"""

from typing import List, Optional
from pydantic import BaseModel

class TableAvailability(BaseModel):
    """A table with its availability for the requested window"""
    id: int
    number: str
    display_name: str
    location: str
    min_capacity: int
    max_capacity: int
    preferred_capacity: int
    is_premium: bool
    is_booth: bool
    min_spend: float
    deposit_required: float
    is_available: bool

class TableCounts(BaseModel):
    total: int
    upstairs: int
    downstairs: int
    available: int

class TableListResponse(BaseModel):
    venue_id: int
    booking_date: str
    start_time: str
    end_time: str
    tables: List[TableAvailability]
    counts: TableCounts

class Recommendation(BaseModel):
    """One ranked way of seating the party"""
    rank: int
    score: int
    label: str
    reasons: List[str]
    combination_id: Optional[int] = None
    combination_type: str
    table_ids: List[int]
    table_numbers: List[str]
    location: Optional[str] = None
    min_capacity: int
    total_capacity: int
    total_min_spend: float
    total_deposit: float
    is_optimal: bool

class RecommendationResponse(BaseModel):
    venue_id: int
    booking_date: str
    start_time: str
    end_time: str
    party_size: int
    has_candidates: bool
    recommendations: List[Recommendation]
