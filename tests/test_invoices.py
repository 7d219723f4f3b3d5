# -*- coding: utf-8 -*-
from invoices import enrich_vc_requests, merge_invoice, merge_invoices
from records import Order
from statuses import OrderStatus


def invoice_row(number, **columns):
    return {'SỐ ĐƠN HÀNG': number, **columns}


def test_invoice_values_win_over_order(order_factory):
    order = order_factory('A', model='VF 6', consultant='Lan', **{'Tên khách hàng': 'Cũ'})
    merged = merge_invoice(invoice_row('A', **{'TÊN KHÁCH HÀNG': 'Mới', 'SỐ VIN': 'RL1'}), order)
    assert merged.customer_name == 'Mới'
    assert merged.vin == 'RL1'
    # Blank on the invoice, filled from the order
    assert merged.model == 'VF 6'


def test_blank_invoice_cells_fall_back_to_order(order_factory):
    order = order_factory('A', **{'VIN': 'RL-ORDER'})
    merged = merge_invoice(invoice_row('A', **{'SỐ VIN': '  '}), order)
    assert merged.vin == 'RL-ORDER'


def test_invoice_only_columns_and_links():
    merged = merge_invoice(invoice_row('A', **{
        'SỐ ĐỘNG CƠ': 'E-99',
        'NGÀY YÊU CẦU XHĐ': '2024-04-01',
        'URL Hợp Đồng': 'https://x/hd.pdf',
    }), None)
    assert merged.engine_number == 'E-99'
    assert merged.intake_time == '2024-04-01'
    assert merged.contract_link == 'https://x/hd.pdf'


def test_result_from_linked_order(order_factory):
    with_vc = order_factory('A', result='Đã ghép', **{'Trạng thái VC': 'Đã cấp VC'})
    merged = merge_invoice(invoice_row('A', **{'KẾT QUẢ': 'ignored'}), with_vc)
    assert merged.result == 'Đã cấp VC'
    assert merged.processing_status == 'Đã cấp VC'

    plain = order_factory('B', result='Chờ ký hóa đơn')
    merged = merge_invoice(invoice_row('B'), plain)
    assert merged.result == 'Chờ ký hóa đơn'
    assert merged.status == OrderStatus.AWAITING_SIGNATURE

    blank = order_factory('C', result='')
    assert merge_invoice(invoice_row('C'), blank).result == 'Không rõ'


def test_result_without_linked_order():
    merged = merge_invoice(invoice_row('Z'), None)
    assert merged.result == 'Đã xuất hóa đơn'
    assert merged.processing_status == 'Đã xuất hóa đơn'
    assert merged.status == OrderStatus.INVOICED


def test_merge_invoices_skips_rows_without_order_number(order_factory):
    orders = [order_factory('A'), order_factory('B')]
    rows = [invoice_row('A'), invoice_row(''), {}, {'TÊN KHÁCH HÀNG': 'X'}, invoice_row(' B ')]
    merged = merge_invoices(rows, orders)
    assert len(merged) == 2
    # Order numbers are matched after trimming
    assert merged[1].model == 'VF 3'


def test_enrich_vc_requests(order_factory):
    orders = [order_factory('A', model='VF 7', **{'VIN': 'RL7'})]
    rows = [
        {'Số đơn hàng': 'A', 'Người YC': 'Lan', 'VIN': 'stale'},
        {'Số đơn hàng': 'GONE', 'VIN': 'stale', 'Dòng xe': 'VF 9'},
    ]
    linked, orphan = enrich_vc_requests(rows, orders)
    assert (linked.vin, linked.model, linked.requester) == ('RL7', 'VF 7', 'Lan')
    assert (orphan.vin, orphan.model) == ('', '')


def test_merged_order_is_a_regular_order():
    merged = merge_invoice(invoice_row('A', **{'DÒNG XE': 'VF 5'}), None)
    assert isinstance(merged, Order)
    assert merged.model == 'VF 5'
