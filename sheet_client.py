# -*- coding: utf-8 -*-
"""
Client for the spreadsheet-backed dealership API (Apps Script web app).

Configuration:
    Create a .env file next to this module with:
    SHEET_API_URL=https://script.google.com/macros/s/<deployment>/exec
    SOLD_CARS_API_URL=https://script.google.com/macros/s/<deployment>/exec
    SHEET_API_TIMEOUT=30
"""
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

import requests
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from invoices import enrich_vc_requests, merge_invoices
from records import Order, StockVehicle, User, VcRequest

logger = logging.getLogger(__name__)

# Load .env file from the same directory as this module
env_path = Path(__file__).parent / '.env'
load_dotenv(env_path)

SHEET_API_URL = os.environ.get('SHEET_API_URL', '')
SOLD_CARS_API_URL = os.environ.get('SOLD_CARS_API_URL', '')
REQUEST_TIMEOUT = float(os.environ.get('SHEET_API_TIMEOUT', '30'))

MONTHS = ['January', 'February', 'March', 'April', 'May', 'June', 'July',
          'August', 'September', 'October', 'November', 'December']
MAX_WORKERS = 6

if not SHEET_API_URL:
    logger.warning("SHEET_API_URL not set. Create a .env file with the sheet API deployment URL.")

RecordT = TypeVar('RecordT', bound=BaseModel)


class SheetApiError(Exception):
    """The sheet API could not be reached or answered with an error status."""


@dataclass(frozen=True)
class Snapshot:
    """Everything the views are computed from, fetched at one point in time."""
    orders: List[Order] = field(default_factory=list)
    stock: List[StockVehicle] = field(default_factory=list)
    invoices: List[Order] = field(default_factory=list)
    vc_requests: List[VcRequest] = field(default_factory=list)
    sold: List[Order] = field(default_factory=list)
    team_roster: Dict[str, List[str]] = field(default_factory=dict)
    users: List[User] = field(default_factory=list)
    fetched_at: Optional[datetime] = None


# =============================================================================
# TRANSPORT
# =============================================================================

def _decode(response: requests.Response) -> Any:
    # Apps Script sometimes returns the JSON document as a JSON string
    data = response.json()
    if isinstance(data, str):
        data = json.loads(data)
    return data


def get_api(params: Dict[str, Any], base_url: Optional[str] = None) -> Dict[str, Any]:
    """
    GET an action from the sheet API.

    Args:
        params: Query parameters (must include "action"); None values are dropped
        base_url: Deployment URL (default: SHEET_API_URL)

    Returns:
        Decoded response body

    Raises:
        SheetApiError: transport failure, non-JSON body or status != SUCCESS
    """
    url = base_url or SHEET_API_URL
    if not url:
        raise SheetApiError("SHEET_API_URL is not configured")

    query = {k: str(v) for k, v in params.items() if v is not None}
    try:
        response = requests.get(url, params=query, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        result = _decode(response)
    except requests.exceptions.RequestException as e:
        raise SheetApiError(f"Sheet API request failed ({params.get('action')}): {e}") from e
    except ValueError as e:
        raise SheetApiError(f"Sheet API returned invalid JSON ({params.get('action')}): {e}") from e

    if not isinstance(result, dict) or result.get('status') != 'SUCCESS':
        message = result.get('message') if isinstance(result, dict) else None
        raise SheetApiError(message or 'API returned an unspecified error.')
    return result


def parse_records(model: Type[RecordT], rows: Any) -> List[RecordT]:
    """Validate raw rows into records, skipping rows that are not objects or fail validation."""
    records = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        try:
            records.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed %s row: %s", model.__name__, e)
    return records


# =============================================================================
# FETCHERS
# =============================================================================

def fetch_orders() -> List[Order]:
    """All working orders (fetched as admin, one page holding everything)."""
    result = get_api({
        'action': 'getPaginatedData',
        'page': '1',
        'pageSize': '9999',
        'sortBy': 'Thời gian nhập',
        'sortOrder': 'desc',
        'filters': json.dumps({}),
        'isAdmin': 'true',
    })
    return parse_records(Order, result.get('data'))


def fetch_stock() -> List[StockVehicle]:
    result = get_api({'action': 'getKhoXeData', 'isAdmin': 'true'})
    return parse_records(StockVehicle, result.get('khoxe'))


def fetch_invoice_rows() -> List[Dict[str, Any]]:
    """Raw invoice sheet rows (merged with orders by invoices.merge_invoices)."""
    result = get_api({'action': 'getXuathoadonData'})
    return [row for row in result.get('data') or [] if isinstance(row, dict)]


def fetch_vc_rows() -> List[VcRequest]:
    result = get_api({'action': 'getYeuCauVcData'})
    return parse_records(VcRequest, result.get('data'))


def fetch_team_roster() -> Dict[str, List[str]]:
    """
    Team name -> member names.

    A team holding a single name as a bare string gets that one member;
    any other non-list value gives an empty team.
    """
    result = get_api({'action': 'getTeamData'})
    teams = result.get('teamData') or {}
    if not isinstance(teams, dict):
        return {}

    roster = {}
    for team, members in teams.items():
        if isinstance(members, str):
            members = [members] if members.strip() else []
        elif not isinstance(members, list):
            if members is not None:
                logger.warning("Ignoring malformed member list of team %s: %r", team, members)
            members = []
        roster[str(team)] = [str(m) for m in members if m is not None and str(m).strip()]
    return roster


def fetch_users() -> List[User]:
    result = get_api({'action': 'getUsers'})
    return parse_records(User, result.get('users'))


# =============================================================================
# SOLD CARS (one sheet per month, positional columns)
# =============================================================================

def map_sold_row(row: List[Any], index: int, month: str, year: int) -> Order:
    """
    Map a positional sold-cars row to an Order.

    Columns: 0 customer, 2 order number, 3 model, 4 version, 5 exterior,
    6 interior, 7 consultant, 8 VIN, 9 policy. Dates are set to the 15th of
    the sheet month.
    """
    def cell(i: int) -> str:
        value = row[i] if i < len(row) else None
        return '' if value is None else str(value)

    sale_date = f"{year:04d}-{MONTHS.index(month) + 1:02d}-15T00:00:00"
    return Order.model_validate({
        'customer_name': cell(0),
        'order_number': cell(2) or f"SOLD-{month}-{index}",
        'model': cell(3),
        'version': cell(4),
        'exterior': cell(5),
        'interior': cell(6),
        'consultant': cell(7),
        'vin': cell(8),
        'policy': cell(9),
        'deposit_date': sale_date,
        'intake_time': sale_date,
        'matched_at': sale_date,
        'invoice_date': sale_date,
        'result': 'Đã xuất hóa đơn',
    })


def fetch_sold_month(month: str) -> List[List[Any]]:
    """Raw rows of one month sheet. Missing sheets and errors yield []."""
    if not SOLD_CARS_API_URL:
        return []
    try:
        response = requests.get(SOLD_CARS_API_URL, params={'sheet': month}, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = _decode(response)
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning("Error fetching sold data for %s: %s", month, e)
        return []

    # The sheet is returned either as {month: rows} or as a bare list
    if isinstance(data, dict) and isinstance(data.get(month), list):
        return data[month]
    if isinstance(data, list):
        return data
    return []


def fetch_sold_cars(year: Optional[int] = None) -> List[Order]:
    """Sold cars of every month sheet, rows without a VIN skipped."""
    year = year or datetime.now().year
    with ThreadPoolExecutor(max_workers=MAX_WORKERS) as executor:
        monthly = list(executor.map(fetch_sold_month, MONTHS))

    sold = []
    index = 0
    for month, rows in zip(MONTHS, monthly):
        for row in rows:
            if not isinstance(row, list) or len(row) <= 8 or not row[8]:
                continue
            sold.append(map_sold_row(row, index, month, year))
            index += 1
    return sold


# =============================================================================
# SNAPSHOT
# =============================================================================

def load_snapshot() -> Snapshot:
    """
    Fetch every collection and assemble one consistent snapshot.

    Raises:
        SheetApiError: when any core collection cannot be fetched
    """
    orders = fetch_orders()
    stock = fetch_stock()
    invoices = merge_invoices(fetch_invoice_rows(), orders)
    vc_requests = enrich_vc_requests(fetch_vc_rows(), orders)
    team_roster = fetch_team_roster()
    users = fetch_users()
    sold = fetch_sold_cars()

    logger.info(
        "Snapshot loaded: %d orders, %d stock, %d invoices, %d VC requests, %d sold",
        len(orders), len(stock), len(invoices), len(vc_requests), len(sold),
    )
    return Snapshot(
        orders=orders,
        stock=stock,
        invoices=invoices,
        vc_requests=vc_requests,
        sold=sold,
        team_roster=team_roster,
        users=users,
        fetched_at=datetime.now(),
    )
