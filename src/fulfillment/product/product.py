"""Product aggregate — catalogue price and available stock.

``stock_quantity`` is the stock still available for sale. It only moves
through ``take_stock`` and ``return_stock``, which the inventory store calls
while creating or releasing a reservation; nothing else decrements it.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text

from fulfillment.domain import fulfillment
from fulfillment.money import to_decimal
from fulfillment.product.events import ProductRegistered, StockLevelChanged


@fulfillment.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    price_cents = Integer(required=True, min_value=0)
    stock_quantity = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name: str, price_cents: int, stock_quantity: int = 0, description: str | None = None):
        if stock_quantity < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description,
            price_cents=price_cents,
            stock_quantity=stock_quantity,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price_cents=price_cents,
                stock_quantity=stock_quantity,
                registered_at=now,
            )
        )
        return product

    def price(self):
        return to_decimal(self.price_cents)

    def has_stock_for(self, quantity: int) -> bool:
        return (self.stock_quantity or 0) >= quantity

    def take_stock(self, quantity: int, order_id: str) -> None:
        """Decrement available stock for a reservation held by ``order_id``."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        available = self.stock_quantity or 0
        if available < quantity:
            raise ValidationError(
                {"quantity": [f"Insufficient stock: {available} available, {quantity} requested"]}
            )

        self._change_stock(available - quantity, quantity, order_id, "reserved")

    def return_stock(self, quantity: int, order_id: str) -> None:
        """Give back stock from a released reservation."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        self._change_stock((self.stock_quantity or 0) + quantity, quantity, order_id, "released")

    def _change_stock(self, new_quantity: int, quantity: int, order_id: str, reason: str) -> None:
        now = datetime.now(UTC)
        previous = self.stock_quantity or 0
        self.stock_quantity = new_quantity
        self.updated_at = now
        self.raise_(
            StockLevelChanged(
                product_id=str(self.id),
                order_id=str(order_id),
                reason=reason,
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=new_quantity,
                changed_at=now,
            )
        )
