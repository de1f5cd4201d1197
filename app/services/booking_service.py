"""
Booking engine: availability, recommendations and the atomic commit
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from app.core.config import settings
from app.core.errors import InvalidRequest
from app.models.table import LOCATIONS
from app.services.allocation import (
    Candidate,
    CombinationRule,
    RankedCandidate,
    RankingPolicy,
    TableInfo,
    generate_candidates,
    rank,
    resolve_free_tables,
)
from app.services.repositories import (
    CommitResult,
    CustomerInfo,
    ReservationDraft,
    ReservationRecord,
    ReservationStore,
    VenueInfo,
)
from app.services.table_locks import TableLockRegistry
from app.utils.time_window import BookingWindow, DateLike, TimeLike, parse_date

logger = logging.getLogger(__name__)

# current status -> statuses it may move to
STATUS_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("completed", "cancelled", "no_show"),
    "cancelled": (),
    "completed": (),
    "no_show": (),
}


def policy_from_settings() -> RankingPolicy:
    return RankingPolicy(
        limit=settings.RECOMMENDATION_LIMIT,
        low_deposit_threshold=Decimal(str(settings.LOW_DEPOSIT_THRESHOLD)),
        mid_deposit_threshold=Decimal(str(settings.MID_DEPOSIT_THRESHOLD)),
        small_party_max=settings.SMALL_PARTY_MAX,
    )


def _validate_party_size(party_size) -> int:
    if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size <= 0:
        raise InvalidRequest("Party size must be a positive whole number")
    return party_size


def _validate_location(location: Optional[str]) -> Optional[str]:
    if location is not None and location not in LOCATIONS:
        raise InvalidRequest(f"Unknown location '{location}'", details={"allowed": list(LOCATIONS)})
    return location


class BookingEngine:
    """Table allocation and recommendation engine over an injected store"""

    def __init__(
        self,
        store: ReservationStore,
        locks: Optional[TableLockRegistry] = None,
        policy: Optional[RankingPolicy] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.store = store
        self.lock_timeout = settings.COMMIT_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        self.locks = locks or TableLockRegistry(timeout=self.lock_timeout)
        self.policy = policy or policy_from_settings()

    def _require_venue(self, venue_id: int) -> VenueInfo:
        venue = self.store.get_venue(venue_id)
        if venue is None or not venue.is_active:
            raise InvalidRequest(f"Unknown venue {venue_id}")
        return venue

    # -------- Read path --------

    def resolve_availability(
        self,
        venue_id: int,
        booking_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        location: Optional[str] = None,
    ) -> Set[int]:
        """Ids of tables free for the whole window; empty for unknown venues"""
        window = BookingWindow.build(booking_date, start_time, end_time)
        _validate_location(location)
        venue = self.store.get_venue(venue_id)
        if venue is None or not venue.is_active:
            return set()
        snapshot = self.store.read_snapshot(venue_id, window, location)
        return resolve_free_tables(snapshot.tables, snapshot.reservations, window, location)

    def generate_candidates(
        self,
        available_table_ids: Iterable[int],
        party_size: int,
        combinations: Iterable[CombinationRule],
        tables: Iterable[TableInfo],
    ) -> List[Candidate]:
        return generate_candidates(available_table_ids, _validate_party_size(party_size), combinations, tables)

    def rank(self, candidates: Iterable[Candidate], party_size: int) -> List[RankedCandidate]:
        return rank(candidates, _validate_party_size(party_size), self.policy)

    def recommend(
        self,
        venue_id: int,
        booking_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        party_size: int,
        location: Optional[str] = None,
    ) -> List[RankedCandidate]:
        """Best table options for a request, best first. Empty means nothing fits."""
        _validate_party_size(party_size)
        _validate_location(location)
        window = BookingWindow.build(booking_date, start_time, end_time)
        self._require_venue(venue_id)

        snapshot = self.store.read_snapshot(venue_id, window, location)
        available = resolve_free_tables(snapshot.tables, snapshot.reservations, window, location)
        candidates = generate_candidates(available, party_size, snapshot.combinations, snapshot.tables)
        ranked = rank(candidates, party_size, self.policy)

        logger.info(
            f"Venue {venue_id} {window.as_strings()} party={party_size}: "
            f"{len(available)} free tables, {len(candidates)} candidates"
        )
        return ranked

    def table_availability(
        self,
        venue_id: int,
        booking_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        location: Optional[str] = None,
    ) -> List[Tuple[TableInfo, bool]]:
        """Every active table in scope paired with whether it is free"""
        _validate_location(location)
        window = BookingWindow.build(booking_date, start_time, end_time)
        self._require_venue(venue_id)

        snapshot = self.store.read_snapshot(venue_id, window, location)
        available = resolve_free_tables(snapshot.tables, snapshot.reservations, window, location)
        return [
            (table, table.id in available)
            for table in snapshot.tables
            if location is None or table.location == location
        ]

    # -------- Commit path --------

    @staticmethod
    def selection_capacity(
        selected: Sequence[TableInfo], combinations: Iterable[CombinationRule]
    ) -> Tuple[int, int]:
        """(min, max) party size the selected tables can seat together"""
        if len(selected) == 1:
            return selected[0].min_capacity, selected[0].max_capacity
        wanted = frozenset(table.id for table in selected)
        minimum = max(table.min_capacity for table in selected)
        for rule in combinations:
            if rule.is_active and frozenset(rule.table_ids) == wanted:
                return minimum, rule.combined_capacity
        return minimum, sum(table.max_capacity for table in selected)

    def commit_reservation(
        self,
        venue_id: int,
        table_ids: Sequence[int],
        booking_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        party_size: int,
        customer: CustomerInfo,
        status: str = "pending",
    ) -> CommitResult:
        """Claim every requested table for the window, or nothing at all.

        Availability is re-checked inside the store transaction while the
        table locks are held; earlier availability reads are only a hint.
        """
        _validate_party_size(party_size)
        table_ids = list(dict.fromkeys(table_ids or []))
        if not table_ids:
            raise InvalidRequest("At least one table must be selected")
        if status not in ("pending", "confirmed"):
            raise InvalidRequest(f"New bookings cannot start as '{status}'")
        window = BookingWindow.build(booking_date, start_time, end_time)
        self._require_venue(venue_id)

        tables = {table.id: table for table in self.store.read_tables(venue_id)}
        unknown = [table_id for table_id in table_ids if table_id not in tables]
        if unknown:
            raise InvalidRequest(
                f"Unknown or inactive tables for this venue: {', '.join(str(t) for t in unknown)}",
                details={"table_ids": unknown},
            )
        selected = [tables[table_id] for table_id in table_ids]
        minimum, maximum = self.selection_capacity(selected, self.store.read_combinations(venue_id))
        if not minimum <= party_size <= maximum:
            raise InvalidRequest(
                f"Selected tables seat {minimum}-{maximum} guests, party size is {party_size}",
                details={"min_capacity": minimum, "max_capacity": maximum},
            )

        draft = ReservationDraft(
            venue_id=venue_id,
            table_ids=table_ids,
            window=window,
            party_size=party_size,
            customer=customer,
            status=status,
        )
        keys = TableLockRegistry.keys_for(table_ids, window.calendar_days)
        with self.locks.hold(keys, timeout=self.lock_timeout):
            result = self.store.insert_reservation_atomic(draft, lock_timeout=self.lock_timeout)

        logger.info(
            f"Booking {result.booking_reference} committed: venue {venue_id}, tables {result.table_ids}, "
            f"{window.as_strings()}, party={party_size}, deposit={result.total_deposit}"
        )
        return result

    # -------- Lifecycle --------

    def get_reservation(self, reference: str) -> Optional[ReservationRecord]:
        return self.store.get_reservation(reference)

    def list_reservations(self, venue_id: int, booking_date: DateLike) -> List[ReservationRecord]:
        return self.store.list_reservations(venue_id, parse_date(booking_date))

    def update_status(self, reference: str, status: str) -> Optional[ReservationRecord]:
        if status not in STATUS_TRANSITIONS:
            raise InvalidRequest(f"Unknown status '{status}'", details={"allowed": list(STATUS_TRANSITIONS)})
        allowed_from = [current for current, targets in STATUS_TRANSITIONS.items() if status in targets]
        record = self.store.update_reservation_status(reference, status, allowed_from)
        if record is not None:
            logger.info(f"Booking {reference} moved to {status}")
        return record
