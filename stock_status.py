# -*- coding: utf-8 -*-
"""
Stock Radar - traffic light per order.

A cheap visual hint for list views: is there something in stock that is
likely close to what the customer ordered? Deliberately looser than the
matcher (version is not checked), the matcher stays the authoritative
pairing computation.
"""

from typing import Dict, Iterable, List

from normalizers import normalize
from records import Order, StockVehicle
from statuses import StockStatus


# =============================================================================
# STOCK LIGHT CONSTANTS
# =============================================================================

class StockLight:
    EXACT = 'exact'      # green
    PARTIAL = 'partial'  # yellow
    NONE = 'none'        # red


# A blank stock status is listed as available in the stock radar
RADAR_AVAILABLE_STATUSES = frozenset([
    StockStatus.AVAILABLE,
    StockStatus.UNSPECIFIED,
])


# =============================================================================
# CLASSIFICATION
# =============================================================================

def _radar_stock(stock: Iterable[StockVehicle]) -> List[StockVehicle]:
    return [car for car in stock if car.status in RADAR_AVAILABLE_STATUSES]


def _classify(order: Order, available: List[StockVehicle]) -> str:
    model = normalize(order.model)
    if not model:
        return StockLight.NONE

    exterior = normalize(order.exterior)
    interior = normalize(order.interior)

    same_model = [car for car in available if normalize(car.model) == model]
    if not same_model:
        return StockLight.NONE

    # Rule 1: model + exterior + interior (containment, as in the matcher)
    if exterior and interior:
        for car in same_model:
            car_interior = normalize(car.interior)
            if normalize(car.exterior) == exterior and car_interior and car_interior in interior:
                return StockLight.EXACT

    # Rule 2: same model, any colour
    return StockLight.PARTIAL


def classify_stock_status(order: Order, stock: Iterable[StockVehicle]) -> str:
    """
    Classify one order against the stock snapshot using rules in order:

    1. EXACT: an available vehicle with the same model, exterior and interior
    2. PARTIAL: an available vehicle with the same model
    3. Default: NONE

    Args:
        order: Order to classify
        stock: Stock snapshot

    Returns:
        StockLight.EXACT, StockLight.PARTIAL or StockLight.NONE
    """
    return _classify(order, _radar_stock(stock))


def classify_orders(orders: Iterable[Order], stock: Iterable[StockVehicle]) -> Dict[str, str]:
    """Order number -> stock light, filtering the stock snapshot once."""
    available = _radar_stock(stock)
    return {order.order_number: _classify(order, available) for order in orders}
