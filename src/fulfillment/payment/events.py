"""Payment domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Payment")
class PaymentRecorded:
    """A payment attempt for an order was recorded with its settlement status."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    status = String(required=True)
    method = String(required=True)
    recorded_at = DateTime(required=True)
