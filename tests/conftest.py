"""
Shared fixtures: a file-backed SQLite venue mirroring the Backroom floor plan
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

from app.core.db import Base, create_db_engine
from app.models import Table, TableCombination, TableCombinationMember, Venue
from app.services.booking_service import BookingEngine
from app.services.repositories import CustomerInfo, SqlReservationStore

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_booking.db"

@pytest.fixture
def db_engine():
    engine = create_db_engine(SQLALCHEMY_DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()

@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

@pytest.fixture
def db_session(session_factory):
    """Create test database session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def venue(db_session):
    """Backroom with two combinable upstairs tables and one downstairs booth"""
    venue = Venue(name="The Backroom", slug="backroom", city="Leeds")
    db_session.add(venue)
    db_session.flush()
    
    tables = {
        "6": Table(venue_id=venue.id, table_number="6", location="upstairs",
                   min_capacity=4, max_capacity=6, preferred_capacity=5,
                   deposit_required=Decimal("50"), min_spend=Decimal("200"), display_order=6),
        "7": Table(venue_id=venue.id, table_number="7", location="upstairs",
                   min_capacity=4, max_capacity=6, preferred_capacity=5,
                   deposit_required=Decimal("25"), min_spend=Decimal("150"), display_order=7),
        "15": Table(venue_id=venue.id, table_number="15", location="downstairs",
                    min_capacity=2, max_capacity=4, preferred_capacity=4, is_booth=True,
                    deposit_required=Decimal("100"), min_spend=Decimal("300"), display_order=15),
    }
    db_session.add_all(tables.values())
    db_session.flush()
    
    combination = TableCombination(venue_id=venue.id, combined_capacity=8, description="Tables 6 & 7")
    combination.members = [
        TableCombinationMember(table_id=tables["6"].id, position=0),
        TableCombinationMember(table_id=tables["7"].id, position=1),
    ]
    db_session.add(combination)
    db_session.flush()
    
    seeded = {
        "id": venue.id,
        "slug": venue.slug,
        "tables": {number: table.id for number, table in tables.items()},
        "combination_id": combination.id,
    }
    # read ids before commit so the session holds no open read transaction
    db_session.commit()
    return seeded

@pytest.fixture
def store(session_factory):
    return SqlReservationStore(session_factory)

@pytest.fixture
def booking_engine(store):
    return BookingEngine(store, lock_timeout=2.0)

@pytest.fixture
def customer():
    return CustomerInfo(name="Jane Doe", email="jane@example.com", phone="07700900123")
