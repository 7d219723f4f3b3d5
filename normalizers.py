# -*- coding: utf-8 -*-
"""
Normalizers

Centralized normalization functions for order and stock attributes.
All attribute comparisons in the matcher, classifier and dashboard use
normalized values for consistency.
"""

import re
import unicodedata
from datetime import date, datetime, timezone
from typing import Any, Optional

from statuses import OrderStatus, StockStatus


_WHITESPACE_RE = re.compile(r'\s+')


# =============================================================================
# ATTRIBUTE NORMALIZATION
# =============================================================================

def normalize(value: Any) -> str:
    """
    Normalize an attribute value for equality / containment tests.

    Trims, collapses whitespace runs to a single space, lowercases and
    applies NFC composition so that composed and decomposed diacritics
    ("Đỏ" typed on different keyboards) compare equal.

    Args:
        value: Raw attribute (string, number or None)

    Returns:
        Normalized string, or empty string for missing input
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        value = str(value)

    text = unicodedata.normalize('NFC', value)
    text = _WHITESPACE_RE.sub(' ', text).strip()
    # casefold can decompose some characters, so recompose afterwards
    return unicodedata.normalize('NFC', text.casefold())


def normalize_name(name: Any) -> str:
    """Normalize a consultant name: trim, collapse spaces, NFC. Case is kept."""
    if not isinstance(name, str):
        return ''
    return unicodedata.normalize('NFC', _WHITESPACE_RE.sub(' ', name).strip())


# =============================================================================
# STATUS NORMALIZATION
# =============================================================================

# Raw sheet text (normalized) -> OrderStatus
ORDER_STATUS_MAP = {
    'đã ghép': OrderStatus.MATCHED,
    'chờ phê duyệt': OrderStatus.PENDING_APPROVAL,
    'đã phê duyệt': OrderStatus.APPROVED,
    'chờ ký hóa đơn': OrderStatus.AWAITING_SIGNATURE,
    'yêu cầu bổ sung': OrderStatus.SUPPLEMENT_REQUESTED,
    'đã xuất hóa đơn': OrderStatus.INVOICED,
    'đã hủy': OrderStatus.CANCELLED,
}

# Raw sheet text (normalized) -> StockStatus
STOCK_STATUS_MAP = {
    'chưa ghép': StockStatus.AVAILABLE,
    'đang giữ': StockStatus.HELD,
    'xe trưng bày': StockStatus.DISPLAY,
    'đã ghép': StockStatus.MATCHED,
}


def normalize_order_status(raw: Any) -> OrderStatus:
    """
    Map the free-text order result ("Kết quả") to an OrderStatus.

    Every status containing "chưa" ("Chưa ghép", "chưa ghép xe", ...) is an
    unmatched order. Other values must match a known label exactly after
    normalization.

    Args:
        raw: Raw status text from the sheet

    Returns:
        OrderStatus member (UNSPECIFIED for blank, UNKNOWN for unrecognised)
    """
    text = normalize(raw)
    if not text:
        return OrderStatus.UNSPECIFIED
    if 'chưa' in text:
        return OrderStatus.UNMATCHED
    return ORDER_STATUS_MAP.get(text, OrderStatus.UNKNOWN)


def normalize_stock_status(raw: Any) -> StockStatus:
    """Map the free-text stock status ("Trạng thái") to a StockStatus."""
    text = normalize(raw)
    if not text:
        return StockStatus.UNSPECIFIED
    return STOCK_STATUS_MAP.get(text, StockStatus.UNKNOWN)


# =============================================================================
# TIMESTAMP PARSING
# =============================================================================

# Formats produced by the sheet besides ISO-8601
_SHEET_DATE_FORMATS = (
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d/%m/%Y',
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a sheet date/time cell into an aware UTC datetime.

    Accepts datetime/date objects, epoch numbers (values above 1e11 are
    milliseconds), ISO-8601 strings (a trailing "Z" is allowed) and the
    dd/mm/yyyy formats typed by staff. Naive values are read as UTC.

    Returns:
        Aware datetime, or None when the value is missing or unparseable
    """
    if value is None or value == '' or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = None
        iso_text = text[:-1] + '+00:00' if text.endswith(('Z', 'z')) else text
        try:
            parsed = datetime.fromisoformat(iso_text)
        except ValueError:
            for fmt in _SHEET_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> float:
    """Epoch seconds for a sheet date/time cell; 0.0 when missing or unparseable."""
    parsed = parse_datetime(value)
    if parsed is None:
        return 0.0
    return parsed.timestamp()
