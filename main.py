# -*- coding: utf-8 -*-
"""
Dealership Matching Service

Serves the computed views of the dealership back office as JSON:
- Stock suggestions per unmatched order (matcher)
- Stock radar lights (stock_status)
- Filtered / sorted / paginated tables (view_engine)
- Dashboard statistics (dashboard)

Data is pulled from the sheet API into an immutable snapshot and refreshed
periodically; every request recomputes from the latest snapshot.
"""
import logging
import os
import socket
import threading
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

from dashboard import DashboardStats, compute_dashboard_stats
from matcher import SuggestionMatcher, orders_with_matches
from sheet_client import SheetApiError, Snapshot, load_snapshot
from stock_status import classify_orders
from view_engine import (
    FilterState, SortConfig, ViewKind, ViewState,
    default_view_state, filter_options, rows_for_view, select_view,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

REFRESH_INTERVAL = int(os.environ.get('REFRESH_INTERVAL', '60'))  # seconds
HOST = os.environ.get('HOST', '127.0.0.1')
PORT = int(os.environ.get('PORT', '8000'))
PORT_ATTEMPTS = 10
VERSION = "1.0.0"


# ============================================================================
# DATA LOADING
# ============================================================================

snapshot: Optional[Snapshot] = None
data_load_error: Optional[str] = None
last_refresh_time: Optional[float] = None
refresh_count = 0


def load_data():
    """Fetch a fresh snapshot; on failure keep serving the previous one."""
    global snapshot, data_load_error, last_refresh_time, refresh_count

    try:
        logger.info("Loading snapshot from the sheet API...")
        fresh = load_snapshot()
    except SheetApiError as e:
        data_load_error = str(e)
        logger.error("Error loading snapshot: %s", e)
        return
    except Exception as e:
        # Malformed sheet data must not kill the refresh thread
        data_load_error = f"{type(e).__name__}: {e}"
        logger.exception("Unexpected error loading snapshot")
        return

    snapshot = fresh
    last_refresh_time = time.time()
    refresh_count += 1
    data_load_error = None
    logger.info("Snapshot ready (refresh #%d)", refresh_count)


def refresh_data_periodically():
    """Background thread polling the sheet API every REFRESH_INTERVAL seconds."""
    while True:
        time.sleep(REFRESH_INTERVAL)
        load_data()


def current_snapshot() -> Snapshot:
    if snapshot is None:
        raise HTTPException(status_code=503, detail=data_load_error or "Data not loaded yet")
    return snapshot


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load data on startup and keep it fresh in the background."""
    load_thread = threading.Thread(target=load_data, daemon=True)
    load_thread.start()
    refresh_thread = threading.Thread(target=refresh_data_periodically, daemon=True)
    refresh_thread.start()
    yield


app = FastAPI(
    title="Dealership Matching Service",
    description="Stock suggestions, stock radar, table views and dashboard statistics",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ViewRequest(BaseModel):
    filters: FilterState = Field(default_factory=FilterState)
    sort: Optional[SortConfig] = None
    page: int = Field(1, ge=1)
    page_size: Optional[int] = Field(None, ge=1)


@app.get("/api/stats")
async def stats():
    """Get application status."""
    if snapshot is None:
        if data_load_error:
            return {"status": "error", "message": data_load_error}
        return {"status": "loading", "message": "Loading snapshot from the sheet API..."}

    next_refresh_in = None
    last_refresh_str = None
    if last_refresh_time:
        last_refresh_str = datetime.fromtimestamp(last_refresh_time).isoformat()
        next_refresh_in = max(0, REFRESH_INTERVAL - int(time.time() - last_refresh_time))

    return {
        "status": "ready",
        "version": VERSION,
        "orders": len(snapshot.orders),
        "stock": len(snapshot.stock),
        "invoices": len(snapshot.invoices),
        "vc_requests": len(snapshot.vc_requests),
        "sold": len(snapshot.sold),
        "last_error": data_load_error,
        "last_refresh": last_refresh_str,
        "next_refresh_in_seconds": next_refresh_in,
        "refresh_count": refresh_count,
    }


@app.get("/api/suggestions")
async def suggestions(include_empty: bool = Query(default=False, description="Keep unmatched orders without candidates")):
    """Order number -> available vehicles, oldest stock first."""
    snap = current_snapshot()
    result = SuggestionMatcher(snap.stock).suggestions(snap.orders, include_empty=include_empty)
    return {
        "count": sum(1 for cars in result.values() if cars),
        "suggestions": {
            number: [car.model_dump() for car in cars]
            for number, cars in result.items()
        },
    }


@app.get("/api/cockpit")
async def cockpit():
    """Matching cockpit: unmatched orders that have candidates, in snapshot order."""
    snap = current_snapshot()
    pairs = orders_with_matches(snap.orders, SuggestionMatcher(snap.stock).suggestions(snap.orders))
    return [
        {
            "order": order.model_dump(),
            "match_count": len(cars),
            "candidates": [car.model_dump() for car in cars],
        }
        for order, cars in pairs
    ]


@app.get("/api/stock-status")
async def stock_status():
    """Stock radar light for every unmatched order."""
    snap = current_snapshot()
    pending = rows_for_view(ViewKind.PENDING, snap.orders, snap.invoices, snap.vc_requests, snap.stock)
    return classify_orders(pending, snap.stock)


@app.post("/api/views/{view}")
async def table_view(view: ViewKind, request: Optional[ViewRequest] = None):
    """One page of a table plus the facet values available for its filters."""
    snap = current_snapshot()
    request = request or ViewRequest()
    defaults = default_view_state(view)
    state = ViewState(
        view=view,
        filters=request.filters,
        sort=request.sort or defaults.sort,
        page=request.page,
        page_size=request.page_size or defaults.page_size,
    )

    rows = rows_for_view(view, snap.orders, snap.invoices, snap.vc_requests, snap.stock)
    suggestion_map = None
    if view == ViewKind.PENDING:
        suggestion_map = SuggestionMatcher(snap.stock).suggestions(rows)
    page = select_view(rows, state, suggestions=suggestion_map)

    body: Dict[str, Any] = page.model_dump()
    body["filter_options"] = filter_options(rows, view)
    if view == ViewKind.PENDING:
        lights = classify_orders(page.rows, snap.stock)
        body["stock_status"] = lights
        body["match_counts"] = {
            o.order_number: len(suggestion_map.get(o.order_number, [])) for o in page.rows
        }
    return body


@app.get("/api/dashboard", response_model=DashboardStats, response_model_by_alias=False)
async def dashboard():
    snap = current_snapshot()
    return compute_dashboard_stats(
        snap.orders,
        snap.stock,
        snap.sold,
        snap.team_roster,
        snap.users,
        invoices=snap.invoices,
    )


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def port_is_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def pick_port(host: str = HOST, first: int = PORT, attempts: int = PORT_ATTEMPTS) -> Optional[int]:
    """First free port in [first, first + attempts), or None."""
    return next((p for p in range(first, first + attempts) if port_is_free(host, p)), None)


def main():
    """Run the service on HOST, probing upwards from PORT."""
    port = pick_port()
    if port is None:
        logger.error("No free port in %d-%d on %s", PORT, PORT + PORT_ATTEMPTS - 1, HOST)
        return

    logger.info("Serving on http://%s:%d (refresh every %ds)", HOST, port, REFRESH_INTERVAL)
    uvicorn.run(app, host=HOST, port=port, log_level="warning")


if __name__ == "__main__":
    main()
