"""Concurrent fulfillment of the same order and of orders sharing stock."""

import threading

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order, OrderStatus
from fulfillment.product.product import Product
from fulfillment.shipment.shipment import Shipment
from protean import current_domain


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock_quantity


class TestSameOrder:
    def test_reentrant_call_is_rejected(self, service, paid_order, carrier):
        order_id, (first, _) = paid_order()
        inner = []
        carrier.configure(before_create=lambda oid: inner.append(service.fulfill(oid)))

        outcome = service.fulfill(order_id)

        assert outcome.success
        assert inner[0].error == "already_in_progress"
        assert _stock(first) == 4
        assert carrier.calls == 1

    def test_two_threads_one_completion(self, service, paid_order, carrier):
        order_id, (first, second) = paid_order(stocks=(5, 3))
        started = threading.Event()
        carrier.configure(before_create=lambda _oid: started.set())
        carrier.hold_until_released()
        outcomes = []

        worker = threading.Thread(target=lambda: outcomes.append(service.fulfill(order_id)))
        worker.start()
        assert started.wait(timeout=5)

        rejected = service.fulfill(order_id)
        carrier.release()
        worker.join(timeout=5)

        assert rejected.error == "already_in_progress"
        assert outcomes[0].success
        assert (_stock(first), _stock(second)) == (4, 2)
        shipments = current_domain.repository_for(Shipment)._dao.query.filter(order_id=order_id).all().items
        assert len(shipments) == 1

    def test_rejection_does_not_touch_the_order(self, service, paid_order, carrier):
        order_id, _ = paid_order()
        seen = []

        def observe_status(oid):
            with fulfillment.domain_context():
                before = current_domain.repository_for(Order).get(oid).status
                service.fulfill(oid)
                after = current_domain.repository_for(Order).get(oid).status
            seen.append((before, after))

        carrier.configure(before_create=observe_status)
        service.fulfill(order_id)

        assert seen == [(OrderStatus.PROCESSING.value, OrderStatus.PROCESSING.value)]

    def test_order_can_be_claimed_again_after_a_run(self, service, paid_order):
        order_id, _ = paid_order()
        service.fulfill(order_id)
        assert service.fulfill(order_id).error == "invalid_state"


class TestDifferentOrders:
    def test_shared_product_is_never_oversold(self, service, make_customer, make_product, make_order, pay):
        product_id = make_product(price="10.00", stock=1)
        orders = []
        for i in range(2):
            customer_id = make_customer(name=f"Buyer {i}", email=f"buyer{i}@example.com")
            order_id = make_order([(product_id, 1)], customer_id=customer_id)
            pay(order_id, 1000)
            orders.append(order_id)

        outcomes = []
        threads = [threading.Thread(target=lambda oid=oid: outcomes.append(service.fulfill(oid))) for oid in orders]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert sorted(o.success for o in outcomes) == [False, True]
        failed = next(o for o in outcomes if not o.success)
        assert failed.error == "insufficient_inventory"
        assert _stock(product_id) == 0
