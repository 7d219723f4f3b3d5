# -*- coding: utf-8 -*-
from matcher import compute_suggestions
from stock_status import StockLight, classify_orders, classify_stock_status


def test_exact_ignores_version(order_factory, car_factory):
    order = order_factory('A', version='Eco')
    car = car_factory('X1', version='Plus')
    assert classify_stock_status(order, [car]) == StockLight.EXACT
    # The matcher is stricter on version
    assert compute_suggestions([order], [car]) == {}


def test_partial_when_only_model_matches(order_factory, car_factory):
    order = order_factory('A', exterior='Đỏ')
    car = car_factory('X1', exterior='Xanh')
    assert classify_stock_status(order, [car]) == StockLight.PARTIAL


def test_none_without_model_in_stock(order_factory, car_factory):
    order = order_factory('A', model='VF 9')
    assert classify_stock_status(order, [car_factory('X1', model='VF 3')]) == StockLight.NONE
    assert classify_stock_status(order, []) == StockLight.NONE


def test_unavailable_stock_is_ignored(order_factory, car_factory):
    order = order_factory('A')
    assert classify_stock_status(order, [car_factory('X1', status='Đang giữ')]) == StockLight.NONE
    # Blank status counts as available in the radar
    assert classify_stock_status(order, [car_factory('X2', status='')]) == StockLight.EXACT


def test_exact_whenever_matcher_finds_candidates(order_factory, car_factory):
    orders = [
        order_factory('A', interior='Đen/Nâu'),
        order_factory('B', exterior='Trắng'),
        order_factory('C', model='VF 5'),
    ]
    stock = [
        car_factory('1', interior='Nâu'),
        car_factory('2', exterior='Trắng', version='Plus'),
        car_factory('3', model='VF 5', exterior='Xám'),
    ]
    lights = classify_orders(orders, stock)
    for number in compute_suggestions(orders, stock):
        assert lights[number] == StockLight.EXACT
    assert lights == {'A': StockLight.EXACT, 'B': StockLight.EXACT, 'C': StockLight.PARTIAL}
