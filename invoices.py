# -*- coding: utf-8 -*-
"""
Invoice merge and VC enrichment.

The invoice sheet ("xuất hóa đơn") uses its own upper-case headers. Each
invoice row is merged with the order it belongs to into a single Order.

Field precedence (per field, first non-blank wins):

    1. invoice sheet value (columns in INVOICE_FIELDS)
    2. linked order value
    3. blank

Result text ("Kết quả") is never taken from the invoice sheet:

    linked order found -> order VC status, else order result, else "Không rõ"
    no linked order    -> "Đã xuất hóa đơn"

processing_status always equals the merged result.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from records import Order, VcRequest


# Invoice sheet column -> Order field
INVOICE_FIELDS = {
    'SỐ ĐƠN HÀNG': 'order_number',
    'TÊN KHÁCH HÀNG': 'customer_name',
    'DÒNG XE': 'model',
    'PHIÊN BẢN': 'version',
    'NGOẠI THẤT': 'exterior',
    'NỘI THẤT': 'interior',
    'TƯ VẤN BÁN HÀNG': 'consultant',
    'SỐ VIN': 'vin',
    'SỐ ĐỘNG CƠ': 'engine_number',
    'NGÀY YÊU CẦU XHĐ': 'intake_time',
    'NGÀY XUẤT HÓA ĐƠN': 'invoice_date',
    'PO PIN': 'po_pin',
    'CHÍNH SÁCH': 'policy',
    'NGÀY CỌC': 'deposit_date',
    'BÁO BÁN': 'sales_report',
    'KẾT QUẢ GỬI MAIL': 'mail_result',
    'URL Hợp Đồng': 'contract_link',
    'URL Đề Nghị XHĐ': 'invoice_proposal_link',
    'URL Hóa Đơn Đã Xuất': 'issued_invoice_link',
}

# Order fields never copied from the linked order
_DERIVED_FIELDS = frozenset(['result', 'status', 'processing_status'])

UNKNOWN_RESULT = 'Không rõ'
INVOICED_RESULT = 'Đã xuất hóa đơn'


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def merge_invoice(invoice_row: Mapping[str, Any], order: Optional[Order]) -> Order:
    """
    Merge one invoice sheet row with its linked order.

    Args:
        invoice_row: Raw invoice row keyed by invoice sheet headers
        order: Order with the same order number, if any

    Returns:
        Merged Order (see module docstring for precedence)
    """
    merged: Dict[str, Any] = {}
    for column, field in INVOICE_FIELDS.items():
        value = invoice_row.get(column)
        if not _is_blank(value):
            merged[field] = value

    if order is not None:
        for field, value in order.model_dump(exclude=_DERIVED_FIELDS).items():
            if field not in merged and not _is_blank(value):
                merged[field] = value
        result = order.vc_status or order.result or UNKNOWN_RESULT
    else:
        result = INVOICED_RESULT

    merged['result'] = result
    merged['processing_status'] = result
    return Order.model_validate(merged)


def index_orders(orders: Iterable[Order]) -> Dict[str, Order]:
    """Order number -> order. Duplicate numbers: last one wins."""
    return {o.order_number: o for o in orders if o.order_number}


def merge_invoices(invoice_rows: Iterable[Mapping[str, Any]], orders: Iterable[Order]) -> List[Order]:
    """Merge every invoice row that carries an order number."""
    by_number = index_orders(orders)
    merged = []
    for row in invoice_rows:
        if not row or _is_blank(row.get('SỐ ĐƠN HÀNG')):
            continue
        number = str(row['SỐ ĐƠN HÀNG']).strip()
        merged.append(merge_invoice(row, by_number.get(number)))
    return merged


def enrich_vc_requests(vc_rows: Iterable[Any], orders: Iterable[Order]) -> List[VcRequest]:
    """Attach VIN and model of the linked order to each VC request."""
    by_number = index_orders(orders)
    enriched = []
    for row in vc_rows:
        request = row if isinstance(row, VcRequest) else VcRequest.model_validate(row)
        order = by_number.get(request.order_number)
        if order is not None:
            request = request.model_copy(update={'vin': order.vin, 'model': order.model})
        else:
            request = request.model_copy(update={'vin': '', 'model': ''})
        enriched.append(request)
    return enriched
