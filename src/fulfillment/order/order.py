"""Order aggregate — line items, the fixed total, and the fulfillment state machine.

State Machine:
    PENDING → VALIDATING → INVENTORY_CHECKED → INVENTORY_RESERVED →
    PAYMENT_CONFIRMED → PROCESSING → SHIPPED → COMPLETED
    any non-terminal state → FAILED

COMPLETED and FAILED are terminal. Transitions never move backwards, so a
second fulfillment attempt on an order that has left PENDING is rejected.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from fulfillment.domain import fulfillment
from fulfillment.money import line_total_cents, to_decimal
from fulfillment.order.events import FulfillmentAdvanced, FulfillmentFailed, OrderCompleted, OrderPlaced


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    VALIDATING = "Validating"
    INVENTORY_CHECKED = "Inventory_Checked"
    INVENTORY_RESERVED = "Inventory_Reserved"
    PAYMENT_CONFIRMED = "Payment_Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"
    FAILED = "Failed"


# Forward path of the pipeline, in order
_PIPELINE = [
    OrderStatus.PENDING,
    OrderStatus.VALIDATING,
    OrderStatus.INVENTORY_CHECKED,
    OrderStatus.INVENTORY_RESERVED,
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.COMPLETED,
]

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED})

_VALID_TRANSITIONS = {
    current: {following, OrderStatus.FAILED} for current, following in zip(_PIPELINE, _PIPELINE[1:])
}
_VALID_TRANSITIONS[OrderStatus.COMPLETED] = set()  # Terminal
_VALID_TRANSITIONS[OrderStatus.FAILED] = set()  # Terminal


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Order")
class OrderItem:
    """A line item. The unit price is captured when the order is placed and never recomputed."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)

    def subtotal_cents(self) -> int:
        return line_total_cents(self.quantity, self.unit_price_cents)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Order:
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    status = String(
        max_length=50,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    total_cents = Integer(default=0, min_value=0)
    failed_stage = String(max_length=50)
    failure_reason = String(max_length=1000)
    payment_id = Identifier()
    tracking_number = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id: str, items_data: list[dict]):
        """Place a new PENDING order.

        ``items_data`` entries carry product_id, quantity and unit_price_cents.
        The total is computed here once and is never recalculated.
        """
        now = datetime.now(UTC)
        total = sum(line_total_cents(i["quantity"], i["unit_price_cents"]) for i in items_data)

        order = cls(
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            total_cents=total,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(i["product_id"]),
                            "quantity": i["quantity"],
                            "unit_price_cents": i["unit_price_cents"],
                        }
                        for i in items_data
                    ]
                ),
                item_count=len(items_data),
                total_cents=total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def total(self):
        return to_decimal(self.total_cents)

    def items_total_cents(self) -> int:
        return sum(item.subtotal_cents() for item in (self.items or []))

    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def advance_to(self, target_status: OrderStatus) -> None:
        """Move one step forward along the pipeline."""
        if target_status == OrderStatus.FAILED:
            raise ValidationError({"status": ["Use fail() to move an order to Failed"]})
        if target_status == OrderStatus.COMPLETED:
            raise ValidationError({"status": ["Use complete() to finish an order"]})
        self._assert_can_transition(target_status)

        previous = self.status
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self.raise_(
            FulfillmentAdvanced(
                order_id=str(self.id),
                from_status=previous,
                to_status=target_status.value,
                advanced_at=now,
            )
        )

    def confirm_payment(self, payment_id: str) -> None:
        self.advance_to(OrderStatus.PAYMENT_CONFIRMED)
        self.payment_id = payment_id

    def mark_shipped(self, tracking_number: str) -> None:
        self.advance_to(OrderStatus.SHIPPED)
        self.tracking_number = tracking_number

    def complete(self) -> None:
        self._assert_can_transition(OrderStatus.COMPLETED)
        if not self.tracking_number:
            raise ValidationError({"tracking_number": ["An order cannot complete without a shipment"]})

        previous = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.COMPLETED.value
        self.updated_at = now
        self.raise_(
            FulfillmentAdvanced(
                order_id=str(self.id),
                from_status=previous,
                to_status=OrderStatus.COMPLETED.value,
                advanced_at=now,
            )
        )
        self.raise_(
            OrderCompleted(
                order_id=str(self.id),
                tracking_number=self.tracking_number,
                total_cents=self.total_cents,
                completed_at=now,
            )
        )

    def fail(self, stage: str, reason: str) -> None:
        """Stop fulfillment at ``stage``. Allowed from every non-terminal state."""
        self._assert_can_transition(OrderStatus.FAILED)

        previous = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.FAILED.value
        self.failed_stage = stage
        self.failure_reason = reason[:1000]
        self.updated_at = now
        self.raise_(
            FulfillmentFailed(
                order_id=str(self.id),
                from_status=previous,
                stage=stage,
                reason=self.failure_reason,
                failed_at=now,
            )
        )
