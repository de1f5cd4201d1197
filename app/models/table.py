"""
Table model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

LOCATIONS = ("upstairs", "downstairs")

class Table(Base):
    __tablename__ = "tables"
    
    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    table_number = Column(String(20), nullable=False)
    display_name = Column(String(100))
    location = Column(String(20), nullable=False)  # upstairs, downstairs
    
    min_capacity = Column(Integer, nullable=False)
    max_capacity = Column(Integer, nullable=False)
    preferred_capacity = Column(Integer, nullable=False)
    
    is_premium = Column(Boolean, default=False, nullable=False)
    is_booth = Column(Boolean, default=False, nullable=False)
    
    min_spend = Column(Numeric(10, 2), default=0, nullable=False)
    deposit_required = Column(Numeric(10, 2), default=0, nullable=False)
    
    description = Column(String(255))
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    venue = relationship("Venue", back_populates="tables")
    reservation_links = relationship("ReservationTable", back_populates="table")
    
    __table_args__ = (
        UniqueConstraint("venue_id", "table_number", name="uq_venue_table_number"),
        CheckConstraint("min_capacity > 0", name="check_table_min_capacity_positive"),
        CheckConstraint(
            "min_capacity <= preferred_capacity AND preferred_capacity <= max_capacity",
            name="check_table_capacity_order",
        ),
        CheckConstraint("min_spend >= 0 AND deposit_required >= 0", name="check_table_terms_non_negative"),
    )
    
    @property
    def label(self) -> str:
        return self.display_name or f"Table {self.table_number}"
