"""Payment aggregate — one settlement attempt against an order.

An order may carry several payments (failed attempts, a pending one), but at
most one of them is ever COMPLETED.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text

from fulfillment.domain import fulfillment
from fulfillment.money import to_decimal
from fulfillment.payment.events import PaymentRecorded


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


@fulfillment.aggregate
class Payment:
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True, min_value=0)
    status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    method = String(required=True, max_length=50)
    metadata = Text()  # JSON object supplied by the payment provider
    recorded_at = DateTime()

    @classmethod
    def record(cls, order_id: str, amount_cents: int, status: str, method: str, metadata: dict | None = None):
        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            amount_cents=amount_cents,
            status=PaymentStatus(status).value,
            method=method,
            metadata=json.dumps(metadata or {}),
            recorded_at=now,
        )
        payment.raise_(
            PaymentRecorded(
                payment_id=str(payment.id),
                order_id=str(order_id),
                amount_cents=amount_cents,
                status=payment.status,
                method=method,
                recorded_at=now,
            )
        )
        return payment

    def amount(self):
        return to_decimal(self.amount_cents)

    def is_completed(self) -> bool:
        return PaymentStatus(self.status) == PaymentStatus.COMPLETED

    def metadata_dict(self) -> dict:
        return json.loads(self.metadata) if self.metadata else {}
