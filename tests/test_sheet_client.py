# -*- coding: utf-8 -*-
import json

import pytest
import requests

import sheet_client
from sheet_client import (
    SheetApiError, fetch_sold_cars, fetch_sold_month, fetch_team_roster, get_api,
    map_sold_row, parse_records,
)
from records import Order, User
from statuses import OrderStatus


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


@pytest.fixture
def api(monkeypatch):
    """Route requests.get to a per-test handler and record the calls."""
    monkeypatch.setattr(sheet_client, 'SHEET_API_URL', 'https://sheet.test/exec')
    monkeypatch.setattr(sheet_client, 'SOLD_CARS_API_URL', 'https://sold.test/exec')
    calls = []
    state = {'handler': lambda url, params: FakeResponse({'status': 'SUCCESS'})}

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return state['handler'](url, params)

    monkeypatch.setattr(sheet_client.requests, 'get', fake_get)

    def respond(handler):
        state['handler'] = handler
    respond.calls = calls
    return respond


class TestGetApi:
    def test_success(self, api):
        api(lambda url, params: FakeResponse({'status': 'SUCCESS', 'data': [1]}))
        assert get_api({'action': 'getUsers', 'skip': None})['data'] == [1]
        assert api.calls == [('https://sheet.test/exec', {'action': 'getUsers'})]

    def test_json_string_body(self, api):
        body = json.dumps({'status': 'SUCCESS', 'users': []})
        api(lambda url, params: FakeResponse(body))
        assert get_api({'action': 'getUsers'})['users'] == []

    def test_error_status_message(self, api):
        api(lambda url, params: FakeResponse({'status': 'ERROR', 'message': 'Sheet locked'}))
        with pytest.raises(SheetApiError, match='Sheet locked'):
            get_api({'action': 'getUsers'})

    def test_error_without_message(self, api):
        api(lambda url, params: FakeResponse({'status': 'ERROR'}))
        with pytest.raises(SheetApiError, match='unspecified'):
            get_api({'action': 'getUsers'})

    def test_http_error(self, api):
        api(lambda url, params: FakeResponse({}, status_code=500))
        with pytest.raises(SheetApiError):
            get_api({'action': 'getUsers'})

    def test_invalid_json(self, api):
        api(lambda url, params: FakeResponse(ValueError('no json')))
        with pytest.raises(SheetApiError, match='invalid JSON'):
            get_api({'action': 'getUsers'})

    def test_missing_url(self, monkeypatch):
        monkeypatch.setattr(sheet_client, 'SHEET_API_URL', '')
        with pytest.raises(SheetApiError, match='not configured'):
            get_api({'action': 'getUsers'})


def test_parse_records_skips_bad_rows():
    rows = [{'name': 'Lan', 'role': 'Tư vấn bán hàng'}, 'junk', None, {'name': 'Minh'}]
    users = parse_records(User, rows)
    assert [u.name for u in users] == ['Lan', 'Minh']
    assert parse_records(User, None) == []


def test_parse_records_logs_invalid_rows(caplog):
    rows = [{'Số đơn hàng': 'A', 'Số ngày ghép': 'many'}]
    assert parse_records(Order, rows) == []
    assert 'Skipping malformed Order row' in caplog.text


def test_fetch_team_roster(api):
    api(lambda url, params: FakeResponse({
        'status': 'SUCCESS', 'teamData': {'Team 1': ['Lan', 'Minh'], 'Team 2': None},
    }))
    assert fetch_team_roster() == {'Team 1': ['Lan', 'Minh'], 'Team 2': []}


def test_map_sold_row():
    row = ['Khách A', 'x', 'N-1', 'VF 5', 'Plus', 'Xanh', 'Đen', 'Lan', 'RLVIN', 'CS1']
    order = map_sold_row(row, 0, 'March', 2024)
    assert (order.customer_name, order.order_number, order.vin) == ('Khách A', 'N-1', 'RLVIN')
    assert (order.model, order.version, order.exterior, order.interior) == ('VF 5', 'Plus', 'Xanh', 'Đen')
    assert order.consultant == 'Lan'
    assert order.policy == 'CS1'
    assert order.invoice_date == '2024-03-15T00:00:00'
    assert order.status == OrderStatus.INVOICED


def test_map_sold_row_generates_order_number():
    row = ['Khách', '', '', 'VF 3', '', '', '', '', 'RL1']
    assert map_sold_row(row, 7, 'June', 2024).order_number == 'SOLD-June-7'


class TestSoldCars:
    def test_month_payload_shapes(self, api):
        api(lambda url, params: FakeResponse({params['sheet']: [['a']]}))
        assert fetch_sold_month('May') == [['a']]
        api(lambda url, params: FakeResponse([['b']]))
        assert fetch_sold_month('May') == [['b']]
        api(lambda url, params: FakeResponse({'status': 'ERROR'}))
        assert fetch_sold_month('May') == []

    def test_month_errors_yield_nothing(self, api):
        def boom(url, params):
            raise requests.exceptions.ConnectionError('down')
        api(boom)
        assert fetch_sold_month('May') == []

    def test_fetch_sold_cars_skips_rows_without_vin(self, api):
        full = ['C', '', 'N-1', 'VF 3', 'Base', 'Đỏ', 'Đen', 'Lan', 'VIN1']

        def handler(url, params):
            if params['sheet'] == 'January':
                return FakeResponse({'January': [full, full[:8], full[:8] + [''], 'junk']})
            if params['sheet'] == 'February':
                return FakeResponse({'February': [full[:8] + ['VIN2']]})
            return FakeResponse({})

        api(handler)
        sold = fetch_sold_cars(year=2024)
        assert [o.vin for o in sold] == ['VIN1', 'VIN2']
        assert sold[1].invoice_date.startswith('2024-02-15')
        assert len(api.calls) == 12


def test_fetch_team_roster_tolerates_malformed_teams(api):
    api(lambda url, params: FakeResponse({
        'status': 'SUCCESS',
        'teamData': {'Số': 5, 'Solo': 'Lan', 'Blank': '  ', 'Mixed': ['Minh', None, '', 7]},
    }))
    assert fetch_team_roster() == {
        'Số': [],
        'Solo': ['Lan'],
        'Blank': [],
        'Mixed': ['Minh', '7'],
    }
