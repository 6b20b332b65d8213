"""Payment confirmation check — a pure read over an order's payment history.

The order's payment is confirmed when exactly one payment is COMPLETED and
its amount equals the order total to the cent. There is no tolerance:
amounts are integer cents on both sides.
"""

from dataclasses import dataclass

from fulfillment.money import format_amount
from fulfillment.payment.payment import PaymentStatus


@dataclass(frozen=True)
class PaymentCheck:
    confirmed: bool
    payment_id: str | None = None
    reason: str | None = None


def confirm_payment(payments, total_cents: int) -> PaymentCheck:
    completed = [p for p in payments if PaymentStatus(p.status) == PaymentStatus.COMPLETED]

    if not completed:
        statuses = sorted({p.status for p in payments})
        if statuses:
            return PaymentCheck(False, reason=f"No completed payment found for order (found: {', '.join(statuses)})")
        return PaymentCheck(False, reason="No completed payment found for order")

    if len(completed) > 1:
        return PaymentCheck(False, reason=f"Order has {len(completed)} completed payments; expected exactly one")

    payment = completed[0]
    if int(payment.amount_cents) != int(total_cents):
        return PaymentCheck(
            False,
            payment_id=str(payment.id),
            reason=(
                f"Payment amount mismatch. Expected: {format_amount(total_cents)}, "
                f"Got: {format_amount(payment.amount_cents)}"
            ),
        )

    return PaymentCheck(True, payment_id=str(payment.id))
