# -*- coding: utf-8 -*-
"""
Matcher - order to stock suggestions

For every unmatched order, finds the available stock vehicles that can be
paired with it:

- Model, version and exterior must be equal after normalization
- Interior is asymmetric: the order interior must CONTAIN the vehicle
  interior (an order may carry a combined trim label such as "Đen/Nâu"
  that embeds the vehicle's simpler "Đen")
- Any blank attribute, on either side, never matches
- Candidates are ranked oldest stock first (missing intake time sorts first)

Everything is recomputed from the snapshot it is given; nothing is cached
between calls.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from normalizers import normalize
from records import Order, StockVehicle
from statuses import OrderStatus


MatchKey = Tuple[str, str, str]


def match_key(record) -> Optional[MatchKey]:
    """Normalized (model, version, exterior), or None when any is blank."""
    key = (normalize(record.model), normalize(record.version), normalize(record.exterior))
    if not all(key):
        return None
    return key


def interior_fits(order_interior: str, vehicle_interior: str) -> bool:
    """True when the normalized order interior contains the vehicle interior."""
    order_norm = normalize(order_interior)
    vehicle_norm = normalize(vehicle_interior)
    if not order_norm or not vehicle_norm:
        return False
    return vehicle_norm in order_norm


# =============================================================================
# MATCHER CLASS
# =============================================================================

class SuggestionMatcher:
    """
    Index of available stock for pairing:
    - Only vehicles with status AVAILABLE are indexed
    - Indexed by normalized (model, version, exterior)
    - Each bucket is pre-sorted by intake time, oldest first
    """

    def __init__(self, stock: Iterable[StockVehicle]):
        """Build the availability index from a stock snapshot."""
        self.available: List[StockVehicle] = [car for car in stock if car.is_available]

        buckets: Dict[MatchKey, List[StockVehicle]] = defaultdict(list)
        for car in self.available:
            key = match_key(car)
            if key is not None:
                buckets[key].append(car)

        # sorted() is stable: equal intake times keep snapshot order
        self.stock_by_key: Dict[MatchKey, List[StockVehicle]] = {
            key: sorted(cars, key=lambda c: c.intake_at)
            for key, cars in buckets.items()
        }

    def find_candidates(self, order: Order) -> List[StockVehicle]:
        """
        Available vehicles compatible with one order, oldest stock first.

        Args:
            order: Order to pair (its status is not checked here)

        Returns:
            List of candidate vehicles (possibly empty)
        """
        key = match_key(order)
        if key is None:
            return []

        return [
            car for car in self.stock_by_key.get(key, [])
            if interior_fits(order.interior, car.interior)
        ]

    def count_matches(self, order: Order) -> int:
        """Number of candidates for one order (cockpit badge)."""
        return len(self.find_candidates(order))

    def suggestions(
        self,
        orders: Iterable[Order],
        include_empty: bool = False
    ) -> Dict[str, List[StockVehicle]]:
        """
        Candidate map for all unmatched orders.

        Args:
            orders: Order snapshot (only UNMATCHED orders are considered)
            include_empty: Keep unmatched orders that have no candidate

        Returns:
            Dict order number -> candidate vehicles
        """
        result: Dict[str, List[StockVehicle]] = {}
        for order in orders:
            if order.status != OrderStatus.UNMATCHED:
                continue
            candidates = self.find_candidates(order)
            if candidates or include_empty:
                # Duplicate order numbers: last one wins
                result[order.order_number] = candidates
        return result


# =============================================================================
# MODULE-LEVEL HELPERS
# =============================================================================

def compute_suggestions(
    orders: Iterable[Order],
    stock: Iterable[StockVehicle],
    include_empty: bool = False
) -> Dict[str, List[StockVehicle]]:
    """Order number -> ranked candidate vehicles for every unmatched order."""
    return SuggestionMatcher(stock).suggestions(orders, include_empty=include_empty)


def orders_with_matches(
    orders: Iterable[Order],
    suggestions: Dict[str, List[StockVehicle]]
) -> List[Tuple[Order, List[StockVehicle]]]:
    """Unmatched orders that have at least one candidate, in snapshot order."""
    return [
        (order, suggestions[order.order_number])
        for order in orders
        if order.status == OrderStatus.UNMATCHED and suggestions.get(order.order_number)
    ]
