# -*- coding: utf-8 -*-
"""
Status enums shared by the records, normalizers and views.

Raw sheet text is mapped onto these members once, at ingestion, by
normalizers.normalize_order_status / normalize_stock_status.
"""

from enum import Enum


class OrderStatus(str, Enum):
    UNMATCHED = "unmatched"                        # "Chưa ghép"
    MATCHED = "matched"                            # "Đã ghép"
    PENDING_APPROVAL = "pending_approval"          # "Chờ phê duyệt"
    APPROVED = "approved"                          # "Đã phê duyệt"
    AWAITING_SIGNATURE = "awaiting_signature"      # "Chờ ký hóa đơn"
    SUPPLEMENT_REQUESTED = "supplement_requested"  # "Yêu cầu bổ sung"
    INVOICED = "invoiced"                          # "Đã xuất hóa đơn"
    CANCELLED = "cancelled"                        # "Đã hủy"
    UNSPECIFIED = "unspecified"
    UNKNOWN = "unknown"


class StockStatus(str, Enum):
    AVAILABLE = "available"    # "Chưa ghép"
    HELD = "held"              # "Đang giữ"
    DISPLAY = "display"        # "Xe trưng bày"
    MATCHED = "matched"        # "Đã ghép"
    UNSPECIFIED = "unspecified"
    UNKNOWN = "unknown"


# Matched with a VIN but not yet invoiced
PAIRED_PIPELINE_STATUSES = frozenset([
    OrderStatus.MATCHED,
    OrderStatus.PENDING_APPROVAL,
    OrderStatus.APPROVED,
    OrderStatus.AWAITING_SIGNATURE,
    OrderStatus.SUPPLEMENT_REQUESTED,
])
