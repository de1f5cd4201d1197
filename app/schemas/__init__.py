"""
Pydantic schemas package
"""

from .common import *
from .table import *
from .booking import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "TableAvailability",
    "TableCounts",
    "TableListResponse",
    "Recommendation",
    "RecommendationResponse",
    "BookingCreate",
    "BookingResult",
    "BookingResponse",
    "StatusUpdate",
]
