"""
Repository layer abstracting table inventory and reservation storage.

The booking engine only talks to a ReservationStore; SqlReservationStore is
the SQLAlchemy implementation used by the application.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.db import WRITE_TRANSACTION
from app.core.errors import BookingError, CommitTimeout, ConflictError, InvalidRequest, StoreUnavailable
from app.models import Reservation, ReservationTable, Table, TableCombination, Venue
from app.models.reservation import ACTIVE_STATUSES
from app.services.allocation import CombinationRule, ReservationSlot, TableInfo, conflicting_tables
from app.utils.time_window import BookingWindow

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class VenueInfo:
    id: int
    name: str
    slug: str
    is_active: bool = True


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str
    phone: str
    special_requests: Optional[str] = None
    occasion: Optional[str] = None


@dataclass(frozen=True)
class ReservationDraft:
    venue_id: int
    table_ids: Sequence[int]
    window: BookingWindow
    party_size: int
    customer: CustomerInfo
    status: str = "pending"


@dataclass(frozen=True)
class CommitResult:
    reservation_id: int
    booking_reference: str
    table_ids: List[int]
    total_deposit: Decimal
    total_min_spend: Decimal
    status: str


@dataclass(frozen=True)
class ReservationRecord:
    id: int
    venue_id: int
    booking_reference: str
    customer_name: str
    customer_email: str
    customer_phone: str
    window: BookingWindow
    party_size: int
    status: str
    table_ids: List[int]
    table_numbers: List[str]
    total_deposit: Decimal
    total_min_spend: Decimal
    special_requests: Optional[str] = None
    occasion: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class AvailabilitySnapshot:
    tables: List[TableInfo] = field(default_factory=list)
    combinations: List[CombinationRule] = field(default_factory=list)
    reservations: List[ReservationSlot] = field(default_factory=list)


class ReservationStore(ABC):
    """Capabilities the booking engine needs from persistence"""

    @abstractmethod
    def get_venue(self, venue_id: int) -> Optional[VenueInfo]:
        ...

    @abstractmethod
    def get_venue_by_slug(self, slug: str) -> Optional[VenueInfo]:
        ...

    @abstractmethod
    def read_tables(self, venue_id: int, location: Optional[str] = None) -> List[TableInfo]:
        ...

    @abstractmethod
    def read_combinations(self, venue_id: int) -> List[CombinationRule]:
        ...

    @abstractmethod
    def read_reservations(self, table_ids: Iterable[int], dates: Iterable[date]) -> List[ReservationSlot]:
        ...

    @abstractmethod
    def read_snapshot(self, venue_id: int, window: BookingWindow, location: Optional[str] = None) -> AvailabilitySnapshot:
        """Tables, combinations and blocking reservations from one consistent read"""

    @abstractmethod
    def insert_reservation_atomic(self, draft: ReservationDraft, lock_timeout: Optional[float] = None) -> CommitResult:
        """Re-check overlap and insert, all or nothing; raises ConflictError"""

    @abstractmethod
    def get_reservation(self, reference: str) -> Optional[ReservationRecord]:
        ...

    @abstractmethod
    def update_reservation_status(
        self, reference: str, status: str, expected_statuses: Iterable[str]
    ) -> Optional[ReservationRecord]:
        ...

    @abstractmethod
    def list_reservations(
        self, venue_id: int, booking_date: date, statuses: Iterable[str] = ACTIVE_STATUSES
    ) -> List[ReservationRecord]:
        ...


# -------- Row conversion --------

def _table_info(table: Table) -> TableInfo:
    return TableInfo(
        id=table.id,
        venue_id=table.venue_id,
        table_number=table.table_number,
        location=table.location,
        min_capacity=table.min_capacity,
        max_capacity=table.max_capacity,
        preferred_capacity=table.preferred_capacity,
        min_spend=Decimal(table.min_spend or 0),
        deposit_required=Decimal(table.deposit_required or 0),
        is_premium=bool(table.is_premium),
        is_booth=bool(table.is_booth),
        is_active=bool(table.is_active),
        display_name=table.display_name,
    )


def _combination_rule(combination: TableCombination) -> CombinationRule:
    return CombinationRule(
        id=combination.id,
        venue_id=combination.venue_id,
        table_ids=tuple(combination.table_ids),
        combined_capacity=combination.combined_capacity,
        is_optimal=bool(combination.is_optimal),
        allow_cross_location=bool(combination.allow_cross_location),
        is_active=bool(combination.is_active),
    )


def _window(reservation: Reservation) -> BookingWindow:
    return BookingWindow(reservation.booking_date, reservation.start_time, reservation.end_time)


def _record(reservation: Reservation) -> ReservationRecord:
    links = reservation.table_links
    return ReservationRecord(
        id=reservation.id,
        venue_id=reservation.venue_id,
        booking_reference=reservation.booking_reference,
        customer_name=reservation.customer_name,
        customer_email=reservation.customer_email,
        customer_phone=reservation.customer_phone,
        window=_window(reservation),
        party_size=reservation.party_size,
        status=reservation.status,
        table_ids=[link.table_id for link in links],
        table_numbers=[link.table.table_number for link in links],
        total_deposit=Decimal(reservation.total_deposit or 0),
        total_min_spend=Decimal(reservation.total_min_spend or 0),
        special_requests=reservation.special_requests,
        occasion=reservation.occasion,
        created_at=reservation.created_at,
    )


def _is_lock_timeout(exc: OperationalError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode == "55P03":  # lock_not_available
        return True
    return "database is locked" in str(exc.orig).lower()


def generate_booking_reference(booking_date: date) -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(4))
    return f"BR{booking_date.strftime('%y%m%d')}{suffix}"


class SqlReservationStore(ReservationStore):
    """SQLAlchemy-backed store"""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        except BookingError:
            db.rollback()
            raise
        except OperationalError as exc:
            db.rollback()
            if _is_lock_timeout(exc):
                logger.warning(f"Lock wait timed out: {exc.orig}")
                raise CommitTimeout("Tables are being booked by another customer, please retry") from exc
            logger.error(f"Reservation store error: {exc}")
            raise StoreUnavailable("Reservation store is unavailable") from exc
        except (InterfaceError, PoolTimeoutError) as exc:
            db.rollback()
            logger.error(f"Reservation store connection error: {exc}")
            raise StoreUnavailable("Reservation store is unavailable") from exc
        finally:
            db.close()

    @staticmethod
    def _is_postgres(db: Session) -> bool:
        return db.get_bind().dialect.name == "postgresql"

    # -------- Reads --------

    def get_venue(self, venue_id: int) -> Optional[VenueInfo]:
        with self._session() as db:
            venue = db.query(Venue).filter(Venue.id == venue_id).first()
            return VenueInfo(venue.id, venue.name, venue.slug, venue.is_active) if venue else None

    def get_venue_by_slug(self, slug: str) -> Optional[VenueInfo]:
        with self._session() as db:
            venue = db.query(Venue).filter(Venue.slug == slug, Venue.is_active == True).first()
            return VenueInfo(venue.id, venue.name, venue.slug, venue.is_active) if venue else None

    @staticmethod
    def _tables(db: Session, venue_id: int, location: Optional[str] = None) -> List[TableInfo]:
        query = db.query(Table).filter(Table.venue_id == venue_id, Table.is_active == True)
        if location:
            query = query.filter(Table.location == location)
        return [_table_info(t) for t in query.order_by(Table.display_order, Table.id).all()]

    @staticmethod
    def _combinations(db: Session, venue_id: int) -> List[CombinationRule]:
        rows = (
            db.query(TableCombination)
            .options(selectinload(TableCombination.members))
            .filter(TableCombination.venue_id == venue_id, TableCombination.is_active == True)
            .order_by(TableCombination.id)
            .all()
        )
        return [_combination_rule(c) for c in rows]

    @staticmethod
    def _blocking_slots(db: Session, table_ids: Iterable[int], dates: Iterable[date]) -> List[ReservationSlot]:
        table_ids = list(table_ids)
        if not table_ids:
            return []
        rows = (
            db.query(ReservationTable.table_id, Reservation)
            .join(Reservation, ReservationTable.reservation_id == Reservation.id)
            .filter(
                ReservationTable.table_id.in_(table_ids),
                Reservation.booking_date.in_(list(dates)),
                Reservation.status.in_(ACTIVE_STATUSES),
            )
            .all()
        )
        return [
            ReservationSlot(
                reservation_id=reservation.id,
                table_id=table_id,
                window=_window(reservation),
                status=reservation.status,
            )
            for table_id, reservation in rows
        ]

    def read_tables(self, venue_id: int, location: Optional[str] = None) -> List[TableInfo]:
        with self._session() as db:
            return self._tables(db, venue_id, location)

    def read_combinations(self, venue_id: int) -> List[CombinationRule]:
        with self._session() as db:
            return self._combinations(db, venue_id)

    def read_reservations(self, table_ids: Iterable[int], dates: Iterable[date]) -> List[ReservationSlot]:
        with self._session() as db:
            return self._blocking_slots(db, table_ids, dates)

    def read_snapshot(self, venue_id: int, window: BookingWindow, location: Optional[str] = None) -> AvailabilitySnapshot:
        with self._session() as db:
            if self._is_postgres(db):
                db.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            tables = self._tables(db, venue_id)
            combinations = self._combinations(db, venue_id)
            scoped = [t.id for t in tables if location is None or t.location == location]
            reservations = self._blocking_slots(db, scoped, window.neighbour_dates)
            db.rollback()
            return AvailabilitySnapshot(tables=tables, combinations=combinations, reservations=reservations)

    def get_reservation(self, reference: str) -> Optional[ReservationRecord]:
        with self._session() as db:
            reservation = (
                db.query(Reservation)
                .options(selectinload(Reservation.table_links).selectinload(ReservationTable.table))
                .filter(Reservation.booking_reference == reference)
                .first()
            )
            return _record(reservation) if reservation else None

    def list_reservations(
        self, venue_id: int, booking_date: date, statuses: Iterable[str] = ACTIVE_STATUSES
    ) -> List[ReservationRecord]:
        with self._session() as db:
            rows = (
                db.query(Reservation)
                .options(selectinload(Reservation.table_links).selectinload(ReservationTable.table))
                .filter(
                    Reservation.venue_id == venue_id,
                    Reservation.booking_date == booking_date,
                    Reservation.status.in_(list(statuses)),
                )
                .order_by(Reservation.start_time, Reservation.id)
                .all()
            )
            return [_record(r) for r in rows]

    # -------- Writes --------

    def _set_lock_timeout(self, db: Session, lock_timeout: Optional[float]) -> None:
        if lock_timeout and self._is_postgres(db):
            # SET LOCAL does not accept bind parameters
            milliseconds = max(1, int(lock_timeout * 1000))
            db.execute(text(f"SET LOCAL lock_timeout = '{milliseconds}ms'"))

    @staticmethod
    def _unique_reference(db: Session, booking_date: date) -> str:
        reference = generate_booking_reference(booking_date)
        while db.query(Reservation.id).filter(Reservation.booking_reference == reference).first():
            reference = generate_booking_reference(booking_date)
        return reference

    def insert_reservation_atomic(self, draft: ReservationDraft, lock_timeout: Optional[float] = None) -> CommitResult:
        ordered_ids = list(dict.fromkeys(draft.table_ids))
        with self._session() as db:
            with db.begin():
                db.connection(execution_options=WRITE_TRANSACTION)
                self._set_lock_timeout(db, lock_timeout)

                rows = (
                    db.query(Table)
                    .filter(Table.id.in_(ordered_ids))
                    .order_by(Table.id)
                    .with_for_update()
                    .all()
                )
                tables = {t.id: t for t in rows if t.venue_id == draft.venue_id and t.is_active}
                missing = [table_id for table_id in ordered_ids if table_id not in tables]
                if missing:
                    raise InvalidRequest(
                        f"Unknown or inactive tables for this venue: {', '.join(str(t) for t in missing)}",
                        details={"table_ids": missing},
                    )

                slots = self._blocking_slots(db, ordered_ids, draft.window.neighbour_dates)
                conflicts = conflicting_tables(ordered_ids, slots, draft.window)
                if conflicts:
                    logger.warning(f"Commit conflict on tables {sorted(conflicts)} for {draft.window.as_strings()}")
                    raise ConflictError(conflicts)

                total_deposit = sum((Decimal(tables[i].deposit_required or 0) for i in ordered_ids), Decimal("0"))
                total_min_spend = sum((Decimal(tables[i].min_spend or 0) for i in ordered_ids), Decimal("0"))

                customer = draft.customer
                now = datetime.utcnow()
                reservation = Reservation(
                    venue_id=draft.venue_id,
                    booking_reference=self._unique_reference(db, draft.window.booking_date),
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=customer.phone,
                    booking_date=draft.window.booking_date,
                    start_time=draft.window.start_time,
                    end_time=draft.window.end_time,
                    party_size=draft.party_size,
                    status=draft.status,
                    special_requests=customer.special_requests,
                    occasion=customer.occasion,
                    total_deposit=total_deposit,
                    total_min_spend=total_min_spend,
                    confirmed_at=now if draft.status == "confirmed" else None,
                )
                reservation.table_links = [
                    ReservationTable(table_id=table_id, is_primary=position == 0)
                    for position, table_id in enumerate(ordered_ids)
                ]
                db.add(reservation)
                db.flush()

                result = CommitResult(
                    reservation_id=reservation.id,
                    booking_reference=reservation.booking_reference,
                    table_ids=ordered_ids,
                    total_deposit=total_deposit,
                    total_min_spend=total_min_spend,
                    status=reservation.status,
                )
            return result

    def update_reservation_status(
        self, reference: str, status: str, expected_statuses: Iterable[str]
    ) -> Optional[ReservationRecord]:
        expected = set(expected_statuses)
        with self._session() as db:
            with db.begin():
                db.connection(execution_options=WRITE_TRANSACTION)
                reservation = (
                    db.query(Reservation)
                    .filter(Reservation.booking_reference == reference)
                    .with_for_update()
                    .first()
                )
                if reservation is None:
                    return None
                if reservation.status not in expected:
                    raise InvalidRequest(
                        f"Cannot change booking from '{reservation.status}' to '{status}'",
                        details={"current_status": reservation.status},
                    )
                now = datetime.utcnow()
                reservation.status = status
                if status == "confirmed":
                    reservation.confirmed_at = now
                elif status == "cancelled":
                    reservation.cancelled_at = now
                elif status == "completed":
                    reservation.completed_at = now
                db.flush()
                # load links before the session closes
                record = _record(reservation)
            return record


def call_with_retry(func: Callable, *args, retries: int = None, delay: float = None, **kwargs):
    """Call `func`, retrying only StoreUnavailable with exponential backoff"""
    retries = max(1, settings.STORE_MAX_RETRIES if retries is None else retries)
    delay = settings.STORE_RETRY_DELAY_SECONDS if delay is None else delay
    for attempt in range(retries):
        try:
            return func(*args, **kwargs)
        except StoreUnavailable as e:
            if attempt < retries - 1:
                wait_time = delay * (2 ** attempt)
                logger.warning(f"Store unavailable (attempt {attempt + 1}/{retries}): {e}. Retrying in {wait_time}s...")
                time.sleep(wait_time)
            else:
                logger.error(f"Store unavailable after {retries} attempts: {e}")
                raise
