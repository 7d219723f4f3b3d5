# -*- coding: utf-8 -*-
"""
Dashboard statistics.

All figures are recomputed from the full snapshot on every call.
"""

from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from normalizers import normalize, normalize_name, parse_datetime
from records import Order, StockVehicle, User
from statuses import PAIRED_PIPELINE_STATUSES, OrderStatus


TOP_N = 10
SECONDS_PER_DAY = 86400
MISSING_LABEL = 'N/A'


class PipelineCounts(BaseModel):
    awaiting_match: int = 0
    matched: int = 0
    pending_approval: int = 0
    awaiting_signature: int = 0
    invoiced: int = 0


class WaitingOrder(BaseModel):
    order: Order
    waiting_days: int


class DemandGroup(BaseModel):
    model: str
    version: str
    exterior: str
    interior: str
    count: int

    @property
    def label(self) -> str:
        return f"{self.model} - {self.version}"

    @property
    def colors(self) -> str:
        return f"{self.exterior} / {self.interior}"


class LeaderboardEntry(BaseModel):
    name: str
    count: int


class DashboardStats(BaseModel):
    pending_count: int
    available_stock: int
    total_sold: int
    total_teams: int
    total_consultants: int
    pipeline: PipelineCounts
    oldest_pending: List[WaitingOrder]
    stuck_matched: List[WaitingOrder]
    demand_groups: List[DemandGroup]
    monthly_leaderboard: List[LeaderboardEntry]


# =============================================================================
# BUILDING BLOCKS
# =============================================================================

def _days_since(timestamp: float, now: datetime) -> int:
    if timestamp <= 0:
        return 0
    return max(0, int((now.timestamp() - timestamp) // SECONDS_PER_DAY))


def pipeline_counts(orders: Sequence[Order]) -> PipelineCounts:
    counts = PipelineCounts()
    field_by_status = {
        OrderStatus.UNMATCHED: 'awaiting_match',
        OrderStatus.MATCHED: 'matched',
        OrderStatus.PENDING_APPROVAL: 'pending_approval',
        OrderStatus.AWAITING_SIGNATURE: 'awaiting_signature',
        OrderStatus.INVOICED: 'invoiced',
    }
    for order in orders:
        field = field_by_status.get(order.status)
        if field:
            setattr(counts, field, getattr(counts, field) + 1)
    return counts


def oldest_pending(orders: Sequence[Order], now: datetime, top_n: int = TOP_N) -> List[WaitingOrder]:
    """Unmatched orders waiting the longest, oldest intake first."""
    pending = [o for o in orders if o.status == OrderStatus.UNMATCHED]
    pending.sort(key=lambda o: o.intake_at)
    return [
        WaitingOrder(order=o, waiting_days=_days_since(o.intake_at, now))
        for o in pending[:top_n]
    ]


def stuck_matched(orders: Sequence[Order], now: datetime, top_n: int = TOP_N) -> List[WaitingOrder]:
    """Matched-but-not-invoiced orders, oldest match (or intake) first."""
    def since(order: Order) -> float:
        return order.matched_at_ts or order.intake_at

    stuck = [o for o in orders if o.status in PAIRED_PIPELINE_STATUSES]
    stuck.sort(key=since)
    return [
        WaitingOrder(order=o, waiting_days=_days_since(since(o), now))
        for o in stuck[:top_n]
    ]


def demand_groups(orders: Sequence[Order], top_n: int = TOP_N) -> List[DemandGroup]:
    """
    Unmatched orders grouped by (model, version, exterior, interior).

    Groups are keyed on normalized values and labelled with the first raw
    spelling seen. Sorted by count, highest first; ties keep first-seen order.
    """
    groups: Dict[tuple, DemandGroup] = OrderedDict()
    for order in orders:
        if order.status != OrderStatus.UNMATCHED:
            continue
        raw = [order.model, order.version, order.exterior, order.interior]
        key = tuple(normalize(v) for v in raw)
        if key in groups:
            groups[key].count += 1
            continue
        labels = [v.strip() or MISSING_LABEL for v in raw]
        groups[key] = DemandGroup(
            model=labels[0], version=labels[1], exterior=labels[2], interior=labels[3], count=1
        )

    ranked = sorted(groups.values(), key=lambda g: -g.count)
    return ranked[:top_n]


def consultant_roster(team_roster: Mapping[str, Iterable[str]], users: Iterable[User]) -> List[str]:
    """Consultant-role users plus every team member, deduplicated by normalized name."""
    roster: Dict[str, str] = OrderedDict()
    for user in users:
        if user.is_consultant and normalize_name(user.name):
            roster.setdefault(normalize_name(user.name), user.name.strip())
    for members in team_roster.values():
        for name in members or []:
            if normalize_name(name):
                roster.setdefault(normalize_name(name), name.strip())
    return list(roster.values())


def monthly_leaderboard(
    invoiced: Iterable[Order],
    roster: Iterable[str],
    now: datetime
) -> List[LeaderboardEntry]:
    """
    Invoices issued in the calendar month of `now`, counted per consultant.

    Every roster consultant is listed, also at zero. Sorted by count
    (highest first), then by name.
    """
    sold_by_consultant: Dict[str, int] = {}
    for order in invoiced:
        issued = parse_datetime(order.invoice_date)
        if issued is None or issued.year != now.year or issued.month != now.month:
            continue
        name = normalize_name(order.consultant)
        if name:
            sold_by_consultant[name] = sold_by_consultant.get(name, 0) + 1

    entries = [
        LeaderboardEntry(name=name, count=sold_by_consultant.get(normalize_name(name), 0))
        for name in roster
    ]
    entries.sort(key=lambda e: (-e.count, e.name))
    return entries


# =============================================================================
# MAIN AGGREGATION
# =============================================================================

def compute_dashboard_stats(
    orders: Sequence[Order],
    stock: Sequence[StockVehicle],
    sold: Sequence[Order],
    team_roster: Mapping[str, Iterable[str]],
    users: Sequence[User],
    invoices: Optional[Sequence[Order]] = None,
    now: Optional[datetime] = None,
    top_n: int = TOP_N,
) -> DashboardStats:
    """
    Compute every dashboard figure from one snapshot.

    Args:
        orders: All working orders
        stock: Stock snapshot
        sold: Sold cars of the year
        team_roster: Team name -> member names
        users: User directory
        invoices: Merged invoice rows for the leaderboard (defaults to orders)
        now: Reference time for waiting days and the current month (UTC now)
        top_n: Length of the ranked lists

    Returns:
        DashboardStats
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    roster = consultant_roster(team_roster, users)

    return DashboardStats(
        pending_count=sum(1 for o in orders if o.status == OrderStatus.UNMATCHED),
        available_stock=sum(1 for car in stock if car.is_available),
        total_sold=len(sold),
        total_teams=len(team_roster),
        total_consultants=sum(1 for u in users if u.is_consultant),
        pipeline=pipeline_counts(orders),
        oldest_pending=oldest_pending(orders, now, top_n),
        stuck_matched=stuck_matched(orders, now, top_n),
        demand_groups=demand_groups(orders, top_n),
        monthly_leaderboard=monthly_leaderboard(
            invoices if invoices is not None else orders, roster, now
        ),
    )
