# -*- coding: utf-8 -*-
"""
Records - typed rows of the dealership sheets.

Each model accepts either the sheet column names (Vietnamese headers) or the
Python field names, ignores columns it does not know and is frozen: a
snapshot is never mutated, views are recomputed from a fresh one.
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from normalizers import normalize, normalize_order_status, normalize_stock_status, parse_timestamp
from statuses import OrderStatus, StockStatus


CONSULTANT_ROLE = 'Tư vấn bán hàng'
DEFAULT_ORDER_RESULT = 'Chưa ghép'


class SheetRecord(BaseModel):
    """Base row: blank cells become "", numeric cells in text columns become text."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)

    @field_validator('*', mode='before')
    @classmethod
    def _coerce_cell(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields.get(info.field_name)
        if field is None:
            return value
        if field.annotation is not str:
            return None if value == '' else value
        if value is None:
            return ''
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float, bool)):
            return str(value)
        return value


# =============================================================================
# ORDERS
# =============================================================================

class Order(SheetRecord):
    order_number: str = Field('', alias='Số đơn hàng')
    customer_name: str = Field('', alias='Tên khách hàng')
    consultant: str = Field('', alias='Tên tư vấn bán hàng')
    model: str = Field('', alias='Dòng xe')
    version: str = Field('', alias='Phiên bản')
    exterior: str = Field('', alias='Ngoại thất')
    interior: str = Field('', alias='Nội thất')
    deposit_date: str = Field('', alias='Ngày cọc')
    intake_time: str = Field('', alias='Thời gian nhập')
    result: str = Field('', alias='Kết quả')
    status: OrderStatus = OrderStatus.UNSPECIFIED
    vin: str = Field('', alias='VIN')
    matched_at: str = Field('', alias='Thời gian ghép')
    match_days: Optional[int] = Field(None, alias='Số ngày ghép')
    vc_status: str = Field('', alias='Trạng thái VC')
    cancel_note: str = Field('', alias='Ghi chú hủy')
    contract_link: str = Field('', alias='LinkHopDong')
    invoice_proposal_link: str = Field('', alias='LinkDeNghiXHD')
    issued_invoice_link: str = Field('', alias='LinkHoaDonDaXuat')
    # Invoice sheet columns, filled by invoices.merge_invoice
    invoice_date: str = Field('', alias='Ngày xuất hóa đơn')
    engine_number: str = Field('', alias='Số động cơ')
    po_pin: str = Field('', alias='PO PIN')
    policy: str = Field('', alias='CHÍNH SÁCH')
    sales_report: str = Field('', alias='BÁO BÁN')
    mail_result: str = Field('', alias='KẾT QUẢ GỬI MAIL')
    processing_status: str = Field('', alias='Trạng thái xử lý')

    @model_validator(mode='before')
    @classmethod
    def _derive_status(cls, data: Any) -> Any:
        if isinstance(data, dict) and 'status' not in data:
            raw = data.get('Kết quả', data.get('result'))
            data = {**data, 'status': normalize_order_status(raw)}
        return data

    @property
    def intake_at(self) -> float:
        return parse_timestamp(self.intake_time)

    @property
    def matched_at_ts(self) -> float:
        return parse_timestamp(self.matched_at)

    @property
    def is_pending(self) -> bool:
        """No VIN assigned yet, or the result still says unmatched."""
        return not self.vin.strip() or self.status == OrderStatus.UNMATCHED

    @property
    def display_status(self) -> str:
        """Status shown in the consultant order list: VC status first, then result."""
        return self.vc_status or self.result or DEFAULT_ORDER_RESULT


# =============================================================================
# STOCK
# =============================================================================

class StockVehicle(SheetRecord):
    vin: str = Field('', alias='VIN')
    model: str = Field('', alias='Dòng xe')
    version: str = Field('', alias='Phiên bản')
    exterior: str = Field('', alias='Ngoại thất')
    interior: str = Field('', alias='Nội thất')
    raw_status: str = Field('', alias='Trạng thái')
    status: StockStatus = StockStatus.UNSPECIFIED
    intake_time: str = Field('', alias='Thời gian nhập')
    arrival_date: str = Field('', alias='Ngày về kho')
    location: str = Field('', alias='Vị trí')
    holder: str = Field('', alias='Người Giữ Xe')
    held_at: str = Field('', alias='Thời Gian Giữ Xe')
    hold_expires_at: str = Field('', alias='Thời Gian Hết Hạn Giữ')

    @model_validator(mode='before')
    @classmethod
    def _derive_status(cls, data: Any) -> Any:
        if isinstance(data, dict) and 'status' not in data:
            raw = data.get('Trạng thái', data.get('raw_status'))
            data = {**data, 'status': normalize_stock_status(raw)}
        return data

    @property
    def intake_at(self) -> float:
        """Stock intake time, falling back to the warehouse arrival date."""
        return parse_timestamp(self.intake_time or self.arrival_date)

    @property
    def is_available(self) -> bool:
        return self.status == StockStatus.AVAILABLE


# =============================================================================
# VINCLUB REQUESTS
# =============================================================================

class VcRequest(SheetRecord):
    order_number: str = Field('', alias='Số đơn hàng')
    customer_name: str = Field('', alias='Tên khách hàng')
    customer_type: str = Field('', alias='Loại KH')
    requester: str = Field('', alias='Người YC')
    processing_status: str = Field('', alias='Trạng thái xử lý')
    requested_at: str = Field('', alias='Thời gian YC')
    dms_code: str = Field('', alias='Mã KH DMS')
    file_urls: str = Field('', alias='FileUrls')
    image_url: str = Field('', alias='URL hình ảnh')
    # Copied from the linked order by invoices.enrich_vc_requests
    vin: str = Field('', alias='VIN')
    model: str = Field('', alias='Dòng xe')

    @property
    def requested_at_ts(self) -> float:
        return parse_timestamp(self.requested_at)

    @property
    def documents(self) -> Dict[str, str]:
        """Submitted document URLs by document key."""
        if self.file_urls:
            try:
                urls = json.loads(self.file_urls)
            except ValueError:
                return {}
            if not isinstance(urls, dict):
                return {}
            return {str(k): str(v) for k, v in urls.items() if v}
        if self.image_url:
            return {'unc': self.image_url}
        return {}


# =============================================================================
# USERS
# =============================================================================

class User(SheetRecord):
    name: str = ''
    username: str = ''
    role: str = ''

    @property
    def is_consultant(self) -> bool:
        return normalize(self.role) == normalize(CONSULTANT_ROLE)
