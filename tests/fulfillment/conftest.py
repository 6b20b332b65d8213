import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from fulfillment.analytics.fake_analytics import FakeAnalytics
from fulfillment.carrier.fake_adapter import FakeCarrier
from fulfillment.config import FulfillmentSettings
from fulfillment.customer.registration import RegisterCustomer
from fulfillment.domain import fulfillment
from fulfillment.inventory.store import InventoryStore
from fulfillment.money import to_cents
from fulfillment.notification.fake_notifier import FakeNotifier
from fulfillment.observability.fake_observer import FakeObserver
from fulfillment.order.placement import PlaceOrder
from fulfillment.payment.recording import RecordPayment
from fulfillment.pipeline.service import OrderFulfillment
from fulfillment.product.registration import RegisterProduct


@pytest.fixture(scope="session")
def fulfillment_bed():
    bed = DomainFixture(fulfillment)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(fulfillment_bed):
    with fulfillment_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    return FulfillmentSettings(
        shipment_timeout_seconds=1.0,
        notification_timeout_seconds=0.5,
        analytics_timeout_seconds=0.5,
        dispatch_workers=4,
    )


@pytest.fixture()
def carrier():
    return FakeCarrier()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def analytics():
    return FakeAnalytics()


@pytest.fixture()
def observer():
    return FakeObserver()


@pytest.fixture()
def inventory(settings):
    return InventoryStore(fulfillment, reservation_ttl=settings.reservation_ttl)


@pytest.fixture()
def service(inventory, carrier, notifier, analytics, observer, settings):
    svc = OrderFulfillment(
        domain=fulfillment,
        inventory=inventory,
        carrier=carrier,
        notifier=notifier,
        analytics=analytics,
        observer=observer,
        settings=settings,
    )
    yield svc
    carrier.release()
    svc.shutdown()


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_customer():
    def _make(name="Alice Johnson", email="alice@example.com"):
        return current_domain.process(RegisterCustomer(name=name, email=email), asynchronous=False)

    return _make


@pytest.fixture()
def make_product():
    def _make(name="Wireless Headphones", price="199.99", stock=50):
        return current_domain.process(
            RegisterProduct(name=name, price_cents=to_cents(price), stock_quantity=stock),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def make_order(make_customer):
    def _make(lines, customer_id=None):
        customer_id = customer_id or make_customer()
        items = [{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines]
        return current_domain.process(
            PlaceOrder(customer_id=customer_id, items=json.dumps(items)),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def pay():
    def _pay(order_id, amount_cents, status="Completed", method="credit_card"):
        return current_domain.process(
            RecordPayment(order_id=order_id, amount_cents=amount_cents, status=status, method=method),
            asynchronous=False,
        )

    return _pay


@pytest.fixture()
def paid_order(make_product, make_order, pay):
    """A pending order for 2 products (stock 5 and 3), paid in full."""

    def _make(quantities=(1, 1), stocks=(5, 3), prices=("19.99", "5.00")):
        products = [
            make_product(name=f"Product {i}", price=price, stock=stock)
            for i, (price, stock) in enumerate(zip(prices, stocks), start=1)
        ]
        order_id = make_order(list(zip(products, quantities)))
        total = sum(to_cents(price) * quantity for price, quantity in zip(prices, quantities))
        pay(order_id, total)
        return order_id, products

    return _make
