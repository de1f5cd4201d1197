"""
Reservation model
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Date, Time, DateTime, Numeric, Text, Boolean,
    ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from app.core.db import Base

RESERVATION_STATUSES = ("pending", "confirmed", "cancelled", "completed", "no_show")
ACTIVE_STATUSES = ("pending", "confirmed")

class Reservation(Base):
    __tablename__ = "reservations"
    
    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    
    # Customer information
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    
    # Booking window
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    party_size = Column(Integer, nullable=False)
    
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, cancelled, completed, no_show
    
    special_requests = Column(Text)
    occasion = Column(String(100))
    
    total_min_spend = Column(Numeric(10, 2), default=0, nullable=False)
    total_deposit = Column(Numeric(10, 2), default=0, nullable=False)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    confirmed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    completed_at = Column(DateTime)
    
    # Relationships
    venue = relationship("Venue", back_populates="reservations")
    table_links = relationship(
        "ReservationTable",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ReservationTable.id",
    )
    
    __table_args__ = (
        CheckConstraint("party_size > 0", name="check_reservation_party_size_positive"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name="check_reservation_status",
        ),
    )
    
    @property
    def table_ids(self):
        return [link.table_id for link in self.table_links]

class ReservationTable(Base):
    __tablename__ = "reservation_tables"
    
    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    
    reservation = relationship("Reservation", back_populates="table_links")
    table = relationship("Table", back_populates="reservation_links")
    
    __table_args__ = (
        Index("ix_reservation_tables_table", "table_id"),
    )
