"""
Venue model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from app.core.db import Base

class Venue(Base):
    __tablename__ = "venues"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    city = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    # Relationships
    tables = relationship("Table", back_populates="venue", cascade="all, delete-orphan")
    combinations = relationship("TableCombination", back_populates="venue", cascade="all, delete-orphan")
    reservations = relationship("Reservation", back_populates="venue", cascade="all, delete-orphan")
