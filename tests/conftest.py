# -*- coding: utf-8 -*-
import pytest

from records import Order, StockVehicle


def make_order(number, model='VF 3', version='Base', exterior='Đỏ', interior='Đen',
               result='Chưa ghép', **extra):
    return Order.model_validate({
        'Số đơn hàng': number,
        'Dòng xe': model,
        'Phiên bản': version,
        'Ngoại thất': exterior,
        'Nội thất': interior,
        'Kết quả': result,
        **extra,
    })


def make_car(vin, model='VF 3', version='Base', exterior='Đỏ', interior='Đen',
             status='Chưa ghép', intake='', **extra):
    return StockVehicle.model_validate({
        'VIN': vin,
        'Dòng xe': model,
        'Phiên bản': version,
        'Ngoại thất': exterior,
        'Nội thất': interior,
        'Trạng thái': status,
        'Thời gian nhập': intake,
        **extra,
    })


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def car_factory():
    return make_car
