# -*- coding: utf-8 -*-
"""
View Engine - filter, sort and paginate table rows.

Every table (invoices, pending, paired, VC, consultant orders, stock) is a
pure function of a row snapshot and a ViewState:

    rows -> apply_filters -> apply_sort -> (view-specific float) -> paginate

Filters are allow-lists: an empty facet selection is no constraint, facets
are ANDed together and values within one facet are ORed. The ViewState is a
plain serializable value, the reducers below return new states.
"""

import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from normalizers import normalize, normalize_name, parse_timestamp
from records import Order, StockVehicle, VcRequest
from statuses import OrderStatus, StockStatus


DEFAULT_PAGE_SIZE = 12
STOCK_PAGE_SIZE = 10


class ViewKind(str, Enum):
    INVOICES = "invoices"
    PENDING = "pending"
    PAIRED = "paired"
    VC = "vc"
    ORDERS = "orders"
    STOCK = "stock"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# =============================================================================
# FACETS AND KEYWORD FIELDS
# =============================================================================

# View -> facet -> row attribute. Facets missing for a view are ignored.
FACET_FIELDS: Dict[ViewKind, Dict[str, str]] = {
    ViewKind.INVOICES: {
        'consultant': 'consultant',
        'model': 'model',
        'status': 'processing_status',
    },
    ViewKind.PENDING: {
        'consultant': 'consultant',
        'model': 'model',
        'version': 'version',
        'exterior': 'exterior',
        'interior': 'interior',
    },
    ViewKind.PAIRED: {
        'consultant': 'consultant',
        'model': 'model',
        'version': 'version',
        'exterior': 'exterior',
    },
    ViewKind.VC: {
        'requester': 'requester',
        'status': 'processing_status',
    },
    ViewKind.ORDERS: {
        'consultant': 'consultant',
        'model': 'model',
        'status': 'display_status',
    },
    ViewKind.STOCK: {
        'model': 'model',
        'version': 'version',
        'status': 'raw_status',
        'exterior': 'exterior',
        'interior': 'interior',
    },
}

_ORDER_KEYWORD_FIELDS = ('order_number', 'customer_name', 'vin')

# View -> attributes searched by the free-text keyword (any one may match)
KEYWORD_FIELDS: Dict[ViewKind, Sequence[str]] = {
    ViewKind.INVOICES: _ORDER_KEYWORD_FIELDS,
    ViewKind.PENDING: _ORDER_KEYWORD_FIELDS,
    ViewKind.PAIRED: _ORDER_KEYWORD_FIELDS,
    ViewKind.ORDERS: _ORDER_KEYWORD_FIELDS,
    ViewKind.VC: _ORDER_KEYWORD_FIELDS + ('dms_code',),
    ViewKind.STOCK: ('vin', 'model', 'version', 'exterior', 'interior', 'location', 'holder'),
}

# Sort keys compared as timestamps (unparseable -> epoch 0), with the record
# property that parses them (StockVehicle.intake_at falls back to arrival date)
DATE_SORT_PROPERTIES: Dict[str, str] = {
    'intake_time': 'intake_at',
    'matched_at': 'matched_at_ts',
    'requested_at': 'requested_at_ts',
}
DATE_SORT_KEYS = frozenset(DATE_SORT_PROPERTIES)


# =============================================================================
# STATE
# =============================================================================

class FilterState(BaseModel):
    keyword: str = ''
    consultant: List[str] = Field(default_factory=list)
    model: List[str] = Field(default_factory=list)
    version: List[str] = Field(default_factory=list)
    exterior: List[str] = Field(default_factory=list)
    interior: List[str] = Field(default_factory=list)
    status: List[str] = Field(default_factory=list)
    requester: List[str] = Field(default_factory=list)


class SortConfig(BaseModel):
    key: str
    direction: SortDirection = SortDirection.ASC


class ViewState(BaseModel):
    view: ViewKind
    filters: FilterState = Field(default_factory=FilterState)
    sort: Optional[SortConfig] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1)


class Page(BaseModel):
    rows: List[Any]
    page: int
    page_size: int
    total_pages: int
    total_rows: int


DEFAULT_SORTS: Dict[ViewKind, SortConfig] = {
    ViewKind.INVOICES: SortConfig(key='intake_time', direction=SortDirection.DESC),
    ViewKind.PENDING: SortConfig(key='intake_time', direction=SortDirection.DESC),
    ViewKind.PAIRED: SortConfig(key='matched_at', direction=SortDirection.DESC),
    ViewKind.VC: SortConfig(key='requested_at', direction=SortDirection.DESC),
    ViewKind.ORDERS: SortConfig(key='intake_time', direction=SortDirection.DESC),
    ViewKind.STOCK: SortConfig(key='intake_time', direction=SortDirection.DESC),
}


def default_view_state(view: ViewKind) -> ViewState:
    """Fresh state for a tab: no filters, default sort, page 1."""
    page_size = STOCK_PAGE_SIZE if view == ViewKind.STOCK else DEFAULT_PAGE_SIZE
    return ViewState(view=view, sort=DEFAULT_SORTS[view], page_size=page_size)


def update_filters(state: ViewState, **changes: Any) -> ViewState:
    """Merge filter changes and go back to page 1."""
    filters = FilterState.model_validate({**state.filters.model_dump(), **changes})
    return state.model_copy(update={'filters': filters, 'page': 1})


def reset_filters(state: ViewState) -> ViewState:
    return state.model_copy(update={'filters': FilterState(), 'page': 1})


def toggle_sort(state: ViewState, key: str) -> ViewState:
    """Sort by key ascending, or descending when already ascending on that key."""
    direction = SortDirection.ASC
    if state.sort is not None and state.sort.key == key and state.sort.direction == SortDirection.ASC:
        direction = SortDirection.DESC
    return state.model_copy(update={'sort': SortConfig(key=key, direction=direction), 'page': 1})


def go_to_page(state: ViewState, page: int) -> ViewState:
    return state.model_copy(update={'page': max(1, page)})


# =============================================================================
# FILTER / SORT / PAGINATE
# =============================================================================

def _text(row: Any, attr: str) -> str:
    value = getattr(row, attr, '')
    if value is None:
        return ''
    return value if isinstance(value, str) else str(value)


def _facet_value(row: Any, attr: str) -> str:
    # Facet values compare like names: trimmed, single spaces, NFC
    return normalize_name(_text(row, attr))


def _timestamp(row: Any, key: str) -> float:
    prop = DATE_SORT_PROPERTIES[key]
    if hasattr(row, prop):
        return getattr(row, prop)
    return parse_timestamp(getattr(row, key, None))


def apply_filters(rows: Iterable[Any], filters: FilterState, view: ViewKind) -> List[Any]:
    """
    Keep the rows that satisfy every active facet and the keyword.

    Args:
        rows: Row snapshot (Order, VcRequest or StockVehicle)
        filters: Current filter state
        view: View kind, selects the facet and keyword tables

    Returns:
        New list of matching rows, input order preserved
    """
    active = []
    for facet, attr in FACET_FIELDS[view].items():
        selected = getattr(filters, facet)
        if selected:
            active.append((attr, {normalize_name(v) for v in selected}))

    keyword = normalize(filters.keyword)
    keyword_fields = KEYWORD_FIELDS[view]

    result = []
    for row in rows:
        if any(_facet_value(row, attr) not in selected for attr, selected in active):
            continue
        if keyword and not any(keyword in normalize(_text(row, f)) for f in keyword_fields):
            continue
        result.append(row)
    return result


def apply_sort(rows: Iterable[Any], sort: Optional[SortConfig]) -> List[Any]:
    """
    Sort rows by one key.

    Date keys compare as timestamps, missing ones as epoch 0 (so they follow
    the direction). Other keys compare as text and rows without a value go
    last whatever the direction. Ties keep input order.
    """
    rows = list(rows)
    if sort is None:
        return rows

    descending = sort.direction == SortDirection.DESC
    if sort.key in DATE_SORT_KEYS:
        return sorted(rows, key=lambda r: _timestamp(r, sort.key), reverse=descending)

    present = [r for r in rows if getattr(r, sort.key, None)]
    missing = [r for r in rows if not getattr(r, sort.key, None)]
    present.sort(key=lambda r: str(getattr(r, sort.key)), reverse=descending)
    return present + missing


def total_pages(count: int, page_size: int) -> int:
    if count <= 0 or page_size <= 0:
        return 0
    return math.ceil(count / page_size)


def clamp_page(page: int, count: int, page_size: int) -> int:
    """Pull a page that fell past the end (after filtering) back to the last page."""
    pages = total_pages(count, page_size)
    if pages == 0:
        return 1
    return min(max(page, 1), pages)


def paginate(rows: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """Rows of a 1-indexed page: [(page-1)*size, page*size)."""
    start = (max(page, 1) - 1) * page_size
    return list(rows[start:start + page_size])


# =============================================================================
# VIEW SELECTION
# =============================================================================

def rows_for_view(
    view: ViewKind,
    orders: Sequence[Order],
    invoices: Sequence[Order],
    vc_requests: Sequence[VcRequest],
    stock: Sequence[StockVehicle],
) -> List[Any]:
    """Base row set of a table before any filtering."""
    if view == ViewKind.PENDING:
        return [o for o in orders if o.status == OrderStatus.UNMATCHED]
    if view == ViewKind.PAIRED:
        return [o for o in orders if o.status == OrderStatus.MATCHED]
    if view == ViewKind.INVOICES:
        return list(invoices)
    if view == ViewKind.VC:
        return list(vc_requests)
    if view == ViewKind.STOCK:
        return list(stock)
    return list(orders)


def select_view(
    rows: Iterable[Any],
    state: ViewState,
    suggestions: Optional[Dict[str, List[StockVehicle]]] = None
) -> Page:
    """
    Visible page of a table.

    Pending orders that have stock suggestions float to the top, held
    vehicles float to the top of the stock table; both keep the sort order
    within each group. The page is clamped to the last page.
    """
    ordered = apply_sort(apply_filters(rows, state.filters, state.view), state.sort)

    if state.view == ViewKind.PENDING and suggestions is not None:
        ordered.sort(key=lambda o: 0 if suggestions.get(o.order_number) else 1)
    elif state.view == ViewKind.STOCK:
        ordered.sort(key=lambda c: 0 if c.status == StockStatus.HELD else 1)

    page = clamp_page(state.page, len(ordered), state.page_size)
    return Page(
        rows=paginate(ordered, page, state.page_size),
        page=page,
        page_size=state.page_size,
        total_pages=total_pages(len(ordered), state.page_size),
        total_rows=len(ordered),
    )


def filter_options(rows: Iterable[Any], view: ViewKind) -> Dict[str, List[str]]:
    """Facet -> sorted distinct non-blank values found in the rows."""
    rows = list(rows)
    options = {}
    for facet, attr in FACET_FIELDS[view].items():
        options[facet] = sorted({_facet_value(r, attr) for r in rows} - {''})
    return options
