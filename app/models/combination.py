"""
Table combination model

A venue-curated rule allowing several tables to be booked as one unit.
Members are ordered by position; position 0 is the primary table.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

class TableCombination(Base):
    __tablename__ = "table_combinations"
    
    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    combined_capacity = Column(Integer, nullable=False)
    is_optimal = Column(Boolean, default=False, nullable=False)
    allow_cross_location = Column(Boolean, default=False, nullable=False)
    description = Column(String(255))
    is_active = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    venue = relationship("Venue", back_populates="combinations")
    members = relationship(
        "TableCombinationMember",
        back_populates="combination",
        cascade="all, delete-orphan",
        order_by="TableCombinationMember.position",
    )
    
    __table_args__ = (
        CheckConstraint("combined_capacity > 0", name="check_combination_capacity_positive"),
    )
    
    @property
    def table_ids(self):
        return [member.table_id for member in self.members]
    
    @property
    def primary_table_id(self):
        return self.members[0].table_id if self.members else None
    
    @property
    def secondary_table_id(self):
        return self.members[1].table_id if len(self.members) > 1 else None

class TableCombinationMember(Base):
    __tablename__ = "table_combination_members"
    
    id = Column(Integer, primary_key=True, index=True)
    combination_id = Column(Integer, ForeignKey("table_combinations.id"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    
    combination = relationship("TableCombination", back_populates="members")
    
    __table_args__ = (
        UniqueConstraint("combination_id", "table_id", name="uq_combination_member"),
    )
