"""Application tests for the inventory store — reserve, release, commit."""

import threading

import pytest
from fulfillment.inventory.reservation import InventoryReservation, ReservationStatus
from fulfillment.inventory.store import InsufficientStock, ReservationFailed, UnknownProduct
from fulfillment.product.product import Product
from protean import current_domain
from protean.exceptions import ValidationError


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock_quantity


def _reservation(reservation_id):
    return current_domain.repository_for(InventoryReservation).get(reservation_id)


class TestReserve:
    def test_decrements_stock_and_records_hold(self, inventory, make_product):
        product_id = make_product(stock=5)
        reservation_id = inventory.reserve(product_id, "ord-1", 2)

        assert _stock(product_id) == 3
        reservation = _reservation(reservation_id)
        assert reservation.status == ReservationStatus.ACTIVE.value
        assert reservation.quantity == 2
        assert str(reservation.order_id) == "ord-1"

    def test_expiry_follows_store_ttl(self, inventory, make_product):
        reservation = _reservation(inventory.reserve(make_product(), "ord-1", 1))
        assert (reservation.expires_at - reservation.reserved_at).total_seconds() == pytest.approx(1800, abs=5)

    def test_insufficient_stock(self, inventory, make_product):
        product_id = make_product(stock=3)
        with pytest.raises(InsufficientStock) as exc:
            inventory.reserve(product_id, "ord-1", 10)
        assert exc.value.requested == 10
        assert exc.value.available == 3
        assert _stock(product_id) == 3
        assert inventory.reservations_for("ord-1") == []

    def test_unknown_product(self, inventory):
        with pytest.raises(UnknownProduct):
            inventory.reserve("prod-missing", "ord-1", 1)

    def test_concurrent_reservers_never_oversell(self, inventory, make_product):
        from fulfillment.domain import fulfillment

        product_id = make_product(stock=5)
        results = []

        def reserve(order_id):
            with fulfillment.domain_context():
                try:
                    inventory.reserve(product_id, order_id, 1)
                    results.append("ok")
                except InsufficientStock:
                    results.append("short")

        threads = [threading.Thread(target=reserve, args=(f"ord-{i}",)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("ok") == 5
        assert results.count("short") == 3
        assert _stock(product_id) == 0


class TestRelease:
    def test_restores_stock(self, inventory, make_product):
        product_id = make_product(stock=5)
        reservation_id = inventory.reserve(product_id, "ord-1", 2)
        inventory.release(reservation_id, reason="payment failed")

        assert _stock(product_id) == 5
        reservation = _reservation(reservation_id)
        assert reservation.status == ReservationStatus.RELEASED.value
        assert reservation.release_reason == "payment failed"

    def test_is_idempotent(self, inventory, make_product):
        product_id = make_product(stock=5)
        reservation_id = inventory.reserve(product_id, "ord-1", 2)
        inventory.release(reservation_id)
        inventory.release(reservation_id)
        assert _stock(product_id) == 5

    def test_unknown_reservation_is_a_no_op(self, inventory):
        inventory.release("res-missing")

    def test_committed_reservation_is_not_released(self, inventory, make_product):
        product_id = make_product(stock=5)
        reservation_id = inventory.reserve(product_id, "ord-1", 2)
        inventory.commit(reservation_id)
        inventory.release(reservation_id)

        assert _stock(product_id) == 3
        assert _reservation(reservation_id).status == ReservationStatus.COMMITTED.value


class TestCommit:
    def test_keeps_stock_decremented(self, inventory, make_product):
        product_id = make_product(stock=5)
        reservation_id = inventory.reserve(product_id, "ord-1", 2)
        inventory.commit(reservation_id)
        assert _stock(product_id) == 3
        assert _reservation(reservation_id).status == ReservationStatus.COMMITTED.value

    def test_is_idempotent(self, inventory, make_product):
        reservation_id = inventory.reserve(make_product(), "ord-1", 1)
        inventory.commit(reservation_id)
        inventory.commit(reservation_id)

    def test_released_reservation_cannot_be_committed(self, inventory, make_product):
        reservation_id = inventory.reserve(make_product(), "ord-1", 1)
        inventory.release(reservation_id)
        with pytest.raises(ValidationError):
            inventory.commit(reservation_id)

    def test_unknown_reservation(self, inventory):
        with pytest.raises(ValidationError):
            inventory.commit("res-missing")


class TestReserveAll:
    def test_reserves_every_line(self, inventory, make_product):
        first = make_product(name="First", stock=5)
        second = make_product(name="Second", stock=3)
        ids = inventory.reserve_all("ord-1", [(first, 1), (second, 1)])

        assert len(ids) == 2
        assert _stock(first) == 4
        assert _stock(second) == 2

    def test_all_or_nothing(self, inventory, make_product):
        first = make_product(name="First", stock=5)
        second = make_product(name="Second", stock=1)

        with pytest.raises(ReservationFailed) as exc:
            inventory.reserve_all("ord-1", [(first, 2), (second, 4)])

        assert isinstance(exc.value.cause, InsufficientStock)
        assert exc.value.compensation_failures == []
        assert _stock(first) == 5
        assert _stock(second) == 1
        active = [r for r in inventory.reservations_for("ord-1") if r.is_active()]
        assert active == []

    def test_unknown_product_rolls_back(self, inventory, make_product):
        first = make_product(stock=5)
        with pytest.raises(ReservationFailed) as exc:
            inventory.reserve_all("ord-1", [(first, 1), ("prod-missing", 1)])
        assert isinstance(exc.value.cause, UnknownProduct)
        assert _stock(first) == 5

    def test_release_all_returns_failures(self, inventory, make_product):
        product_id = make_product(stock=5)
        ids = inventory.reserve_all("ord-1", [(product_id, 2)])
        assert inventory.release_all(ids, reason="cancelled") == []
        assert _stock(product_id) == 5

    def test_commit_all(self, inventory, make_product):
        product_id = make_product(stock=5)
        ids = inventory.reserve_all("ord-1", [(product_id, 2)])
        assert inventory.commit_all(ids) == []
        assert _stock(product_id) == 3
