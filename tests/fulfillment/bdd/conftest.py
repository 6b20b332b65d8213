"""Shared BDD fixtures and step definitions for order fulfillment."""

import json

import pytest
from fulfillment.order.order import Order
from fulfillment.order.placement import PlaceOrder
from fulfillment.product.product import Product
from fulfillment.shipment.shipment import Shipment
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def catalogue():
    """Product ids keyed by name."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a registered customer", target_fixture="customer_id")
def registered_customer(make_customer):
    return make_customer(name="Alice Johnson", email="alice@example.com")


@given(parsers.cfparse('a product "{name}" priced {price} with {stock:d} in stock'))
def product_in_stock(make_product, catalogue, name, price, stock):
    catalogue[name] = make_product(name=name, price=price, stock=stock)


@given(parsers.re(r"a pending order for (?P<lines>.+)"), target_fixture="order_id")
def pending_order(customer_id, catalogue, lines):
    items = []
    for line in lines.split(" and "):
        quantity, name = line.split(" ", 1)
        items.append({"product_id": catalogue[name.strip('"')], "quantity": int(quantity)})
    return current_domain.process(
        PlaceOrder(customer_id=customer_id, items=json.dumps(items)),
        asynchronous=False,
    )


@given("the order is paid in full")
def paid_in_full(order_id, pay):
    pay(order_id, current_domain.repository_for(Order).get(order_id).total_cents)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def product_stock(catalogue, name, stock):
    assert current_domain.repository_for(Product).get(catalogue[name]).stock_quantity == stock


def _shipment_count(order_id):
    repo = current_domain.repository_for(Shipment)
    return len(repo._dao.query.filter(order_id=str(order_id)).all().items)


@then("exactly 1 shipment exists for the order")
def one_shipment(order_id):
    assert _shipment_count(order_id) == 1


@then("no shipment exists for the order")
def no_shipment(order_id):
    assert _shipment_count(order_id) == 0
