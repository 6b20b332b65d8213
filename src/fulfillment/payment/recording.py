"""Payment recording — command and handler.

Recording is the only way payments enter the ledger. A second COMPLETED
payment for the same order is refused.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order
from fulfillment.payment.payment import Payment, PaymentStatus


@fulfillment.command(part_of="Payment")
class RecordPayment:
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True, min_value=0)
    status = String(required=True, max_length=20)
    method = String(required=True, max_length=50)
    metadata = Text()  # JSON object


def payments_for(order_id: str) -> list:
    repo = current_domain.repository_for(Payment)
    return repo._dao.query.filter(order_id=str(order_id)).all().items


@fulfillment.command_handler(part_of=Payment)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        try:
            status = PaymentStatus(command.status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown payment status: {command.status}"]})

        try:
            current_domain.repository_for(Order).get(command.order_id)
        except ObjectNotFoundError:
            raise ValidationError({"order_id": ["Order not found"]})

        if status == PaymentStatus.COMPLETED and any(p.is_completed() for p in payments_for(command.order_id)):
            raise ValidationError({"status": ["Order already has a completed payment"]})

        metadata = json.loads(command.metadata) if command.metadata else {}
        payment = Payment.record(
            order_id=command.order_id,
            amount_cents=command.amount_cents,
            status=status.value,
            method=command.method,
            metadata=metadata,
        )
        current_domain.repository_for(Payment).add(payment)
        return str(payment.id)
