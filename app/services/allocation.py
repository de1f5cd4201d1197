"""
Table allocation and recommendation pipeline

Pure functions over plain records: resolve which tables are free for a
window, enumerate the single tables and venue-approved combinations that can
seat a party, and rank them. Nothing here touches the database.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from app.utils.time_window import BookingWindow

SINGLE = "single"
COMBINATION = "combination"

BLOCKING_STATUSES = frozenset({"pending", "confirmed"})


@dataclass(frozen=True)
class TableInfo:
    id: int
    venue_id: int
    table_number: str
    location: str
    min_capacity: int
    max_capacity: int
    preferred_capacity: int
    min_spend: Decimal = Decimal("0")
    deposit_required: Decimal = Decimal("0")
    is_premium: bool = False
    is_booth: bool = False
    is_active: bool = True
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or f"Table {self.table_number}"


@dataclass(frozen=True)
class CombinationRule:
    id: int
    venue_id: int
    table_ids: Tuple[int, ...]
    combined_capacity: int
    is_optimal: bool = False
    allow_cross_location: bool = False
    is_active: bool = True

    @property
    def primary_table_id(self) -> int:
        return self.table_ids[0]

    @property
    def secondary_table_id(self) -> Optional[int]:
        return self.table_ids[1] if len(self.table_ids) > 1 else None


@dataclass(frozen=True)
class ReservationSlot:
    """One table claimed by one reservation"""
    reservation_id: int
    table_id: int
    window: BookingWindow
    status: str

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES


@dataclass(frozen=True)
class Candidate:
    table_ids: Tuple[int, ...]
    table_numbers: Tuple[str, ...]
    combination_type: str
    min_capacity: int
    capacity: int
    total_min_spend: Decimal
    total_deposit: Decimal
    is_optimal: bool = False
    is_premium: bool = False
    location: Optional[str] = None
    combination_id: Optional[int] = None

    def fits(self, party_size: int) -> bool:
        return self.min_capacity <= party_size <= self.capacity


@dataclass(frozen=True)
class RankingPolicy:
    limit: int = 5
    low_deposit_threshold: Decimal = Decimal("50")
    mid_deposit_threshold: Decimal = Decimal("100")
    small_party_max: int = 8


@dataclass(frozen=True)
class RankedCandidate:
    candidate: Candidate
    score: int
    label: str
    reasons: List[str] = field(default_factory=list)


# -------- Availability --------

def resolve_free_tables(
    tables: Iterable[TableInfo],
    reservations: Iterable[ReservationSlot],
    window: BookingWindow,
    location: Optional[str] = None,
) -> Set[int]:
    """Ids of active tables with no pending/confirmed reservation overlapping `window`"""
    in_scope = {
        table.id
        for table in tables
        if table.is_active and (location is None or table.location == location)
    }
    taken = {
        slot.table_id
        for slot in reservations
        if slot.table_id in in_scope and slot.is_blocking and slot.window.overlaps(window)
    }
    return in_scope - taken


def conflicting_tables(
    table_ids: Iterable[int],
    reservations: Iterable[ReservationSlot],
    window: BookingWindow,
) -> Set[int]:
    wanted = set(table_ids)
    return {
        slot.table_id
        for slot in reservations
        if slot.table_id in wanted and slot.is_blocking and slot.window.overlaps(window)
    }


# -------- Candidate generation --------

def single_is_optimal(table: TableInfo, party_size: int) -> bool:
    return party_size == table.preferred_capacity


def _single_candidate(table: TableInfo, party_size: int) -> Candidate:
    return Candidate(
        table_ids=(table.id,),
        table_numbers=(table.table_number,),
        combination_type=SINGLE,
        min_capacity=table.min_capacity,
        capacity=table.max_capacity,
        total_min_spend=Decimal(table.min_spend),
        total_deposit=Decimal(table.deposit_required),
        is_optimal=single_is_optimal(table, party_size),
        is_premium=table.is_premium,
        location=table.location,
    )


def _combination_candidate(rule: CombinationRule, members: Sequence[TableInfo]) -> Optional[Candidate]:
    if len({table.venue_id for table in members}) != 1 or members[0].venue_id != rule.venue_id:
        return None
    locations = {table.location for table in members}
    if len(locations) > 1 and not rule.allow_cross_location:
        return None
    return Candidate(
        table_ids=tuple(table.id for table in members),
        table_numbers=tuple(table.table_number for table in members),
        combination_type=COMBINATION,
        min_capacity=max(table.min_capacity for table in members),
        capacity=rule.combined_capacity,
        total_min_spend=sum((Decimal(table.min_spend) for table in members), Decimal("0")),
        total_deposit=sum((Decimal(table.deposit_required) for table in members), Decimal("0")),
        is_optimal=rule.is_optimal,
        is_premium=any(table.is_premium for table in members),
        location=members[0].location if len(locations) == 1 else None,
        combination_id=rule.id,
    )


def generate_candidates(
    available_table_ids: Iterable[int],
    party_size: int,
    combinations: Iterable[CombinationRule],
    tables: Iterable[TableInfo],
) -> List[Candidate]:
    """Every single table and combination that can seat the party right now.

    A combination is offered only when all of its tables are available;
    candidates that cannot seat the party are left out entirely.
    """
    available = set(available_table_ids)
    by_id: Dict[int, TableInfo] = {table.id: table for table in tables}
    candidates: List[Candidate] = []

    for table_id in sorted(available):
        table = by_id.get(table_id)
        if table is None or not table.is_active:
            continue
        if table.min_capacity <= party_size <= table.max_capacity:
            candidates.append(_single_candidate(table, party_size))

    seen = set()
    for rule in sorted(combinations, key=lambda r: r.id):
        if not rule.is_active or len(rule.table_ids) < 2:
            continue
        if not all(table_id in available and table_id in by_id for table_id in rule.table_ids):
            continue
        key = frozenset(rule.table_ids)
        if key in seen:
            continue
        candidate = _combination_candidate(rule, [by_id[table_id] for table_id in rule.table_ids])
        if candidate is not None and candidate.fits(party_size):
            seen.add(key)
            candidates.append(candidate)

    return candidates


# -------- Ranking --------

def score_candidate(candidate: Candidate, party_size: int, policy: RankingPolicy = RankingPolicy()) -> int:
    score = 0

    spare_seats = candidate.capacity - party_size
    if spare_seats <= 2:
        score += 40
    elif spare_seats <= 4:
        score += 30
    elif spare_seats <= 6:
        score += 20
    else:
        score += 10

    if candidate.total_deposit <= policy.low_deposit_threshold:
        score += 30
    elif candidate.total_deposit <= policy.mid_deposit_threshold:
        score += 20
    else:
        score += 10

    small_party = party_size <= policy.small_party_max
    if small_party and candidate.combination_type == SINGLE:
        score += 20
    elif not small_party and candidate.combination_type == COMBINATION:
        score += 20
    else:
        score += 10

    if candidate.is_optimal:
        score += 10

    return min(score, 100)


def recommendation_label(score: int) -> str:
    if score >= 90:
        return "Perfect Match"
    if score >= 80:
        return "Great Choice"
    if score >= 70:
        return "Good Option"
    return "Available"


def recommendation_reasons(candidate: Candidate, party_size: int, policy: RankingPolicy = RankingPolicy()) -> List[str]:
    reasons = []
    if candidate.is_optimal:
        reasons.append("Optimal capacity match")
    if candidate.capacity == party_size:
        reasons.append("Exact fit for your party")
    if candidate.total_deposit < policy.mid_deposit_threshold:
        reasons.append("Low deposit required")
    if candidate.is_premium:
        reasons.append("Premium table")
    if candidate.combination_type == COMBINATION:
        reasons.append(f"{len(candidate.table_ids)} tables joined together")
    return reasons


def rank(
    candidates: Iterable[Candidate],
    party_size: int,
    policy: RankingPolicy = RankingPolicy(),
) -> List[RankedCandidate]:
    """Order candidates best first and keep the top `policy.limit`.

    Ties are broken by lower deposit, then by table ids, so the same input
    always yields the same order.
    """
    scored = [
        (score_candidate(candidate, party_size, policy), candidate)
        for candidate in candidates
        if candidate.fits(party_size)
    ]
    scored.sort(key=lambda item: (-item[0], item[1].total_deposit, item[1].table_ids))
    return [
        RankedCandidate(
            candidate=candidate,
            score=score,
            label=recommendation_label(score),
            reasons=recommendation_reasons(candidate, party_size, policy),
        )
        for score, candidate in scored[: policy.limit]
    ]
