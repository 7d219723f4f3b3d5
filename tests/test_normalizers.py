# -*- coding: utf-8 -*-
import unicodedata
from datetime import date, datetime, timezone

import pytest

from normalizers import (
    normalize, normalize_name, normalize_order_status, normalize_stock_status,
    parse_datetime, parse_timestamp,
)
from statuses import OrderStatus, StockStatus


class TestNormalize:
    def test_missing_is_empty(self):
        assert normalize(None) == ''
        assert normalize('') == ''
        assert normalize('   ') == ''

    def test_trims_collapses_and_lowercases(self):
        assert normalize('  Plus   Tiêu  chuẩn ') == 'plus tiêu chuẩn'

    def test_composed_and_decomposed_compare_equal(self):
        composed = unicodedata.normalize('NFC', 'Đỏ Nâu')
        decomposed = unicodedata.normalize('NFD', 'Đỏ Nâu')
        assert composed != decomposed
        assert normalize(composed) == normalize(decomposed)

    def test_numbers_are_stringified(self):
        assert normalize(5) == '5'


def test_normalize_name_keeps_case():
    assert normalize_name('  Nguyễn   Văn A ') == 'Nguyễn Văn A'
    assert normalize_name(None) == ''


@pytest.mark.parametrize('raw, expected', [
    ('Chưa ghép', OrderStatus.UNMATCHED),
    ('chưa ghép xe', OrderStatus.UNMATCHED),
    ('ĐÃ GHÉP', OrderStatus.MATCHED),
    ('Chờ phê duyệt', OrderStatus.PENDING_APPROVAL),
    ('Đã phê duyệt', OrderStatus.APPROVED),
    ('Chờ ký hóa đơn', OrderStatus.AWAITING_SIGNATURE),
    ('Yêu cầu bổ sung', OrderStatus.SUPPLEMENT_REQUESTED),
    ('Đã xuất hóa đơn', OrderStatus.INVOICED),
    ('Đã hủy', OrderStatus.CANCELLED),
    ('', OrderStatus.UNSPECIFIED),
    (None, OrderStatus.UNSPECIFIED),
    ('something else', OrderStatus.UNKNOWN),
])
def test_order_status_mapping(raw, expected):
    assert normalize_order_status(raw) == expected


@pytest.mark.parametrize('raw, expected', [
    ('Chưa ghép', StockStatus.AVAILABLE),
    ('Đang giữ', StockStatus.HELD),
    ('Xe trưng bày', StockStatus.DISPLAY),
    ('', StockStatus.UNSPECIFIED),
    ('??', StockStatus.UNKNOWN),
])
def test_stock_status_mapping(raw, expected):
    assert normalize_stock_status(raw) == expected


class TestParseTimestamp:
    def test_iso_with_z(self):
        expected = datetime(2024, 1, 1, 3, 0, tzinfo=timezone.utc).timestamp()
        assert parse_timestamp('2024-01-01T03:00:00.000Z') == expected

    def test_sheet_day_first_format(self):
        expected = datetime(2024, 3, 15, 8, 30, tzinfo=timezone.utc).timestamp()
        assert parse_timestamp('15/03/2024 08:30:00') == expected

    def test_date_and_datetime_objects(self):
        assert parse_timestamp(date(2024, 1, 2)) == datetime(2024, 1, 2, tzinfo=timezone.utc).timestamp()
        aware = datetime(2024, 1, 2, 5, tzinfo=timezone.utc)
        assert parse_timestamp(aware) == aware.timestamp()

    def test_epoch_milliseconds(self):
        assert parse_timestamp(1704067200000) == 1704067200.0
        assert parse_timestamp(1704067200) == 1704067200.0

    @pytest.mark.parametrize('value', [None, '', 'not a date', '32/13/2024', True])
    def test_unparseable_is_epoch_zero(self, value):
        assert parse_timestamp(value) == 0.0

    def test_parse_datetime_is_utc_aware(self):
        parsed = parse_datetime('2024-05-01')
        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 0
