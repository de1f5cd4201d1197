"""
Database models package
"""

from .venue import Venue
from .table import Table
from .combination import TableCombination, TableCombinationMember
from .reservation import Reservation, ReservationTable

__all__ = [
    "Venue",
    "Table",
    "TableCombination",
    "TableCombinationMember",
    "Reservation",
    "ReservationTable",
]
