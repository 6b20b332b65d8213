"""Application tests for payment recording."""

import json

import pytest
from fulfillment.payment.payment import Payment, PaymentStatus
from fulfillment.payment.recording import RecordPayment, payments_for
from protean import current_domain
from protean.exceptions import ValidationError


@pytest.fixture()
def order_id(make_product, make_order):
    return make_order([(make_product(price="25.00"), 2)])


class TestRecordPayment:
    def test_persists_payment(self, order_id):
        payment_id = current_domain.process(
            RecordPayment(
                order_id=order_id,
                amount_cents=5000,
                status="Completed",
                method="credit_card",
                metadata=json.dumps({"card_last4": "4242"}),
            ),
            asynchronous=False,
        )
        payment = current_domain.repository_for(Payment).get(payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert str(payment.amount()) == "50.00"
        assert payment.metadata_dict() == {"card_last4": "4242"}

    def test_payments_for_order(self, order_id, pay):
        pay(order_id, 5000, status="Failed")
        pay(order_id, 5000)
        assert len(payments_for(order_id)) == 2

    def test_second_completed_payment_refused(self, order_id, pay):
        pay(order_id, 5000)
        with pytest.raises(ValidationError) as exc:
            pay(order_id, 5000)
        assert "status" in exc.value.messages

    def test_unknown_status_refused(self, order_id, pay):
        with pytest.raises(ValidationError):
            pay(order_id, 5000, status="Refunded")

    def test_unknown_order_refused(self, pay):
        with pytest.raises(ValidationError) as exc:
            pay("ord-missing", 5000)
        assert "order_id" in exc.value.messages
