"""Order placement — command and handler.

Unit prices are captured from the catalogue at placement time; later price
changes never alter an existing order.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from fulfillment.customer.customer import Customer
from fulfillment.domain import fulfillment
from fulfillment.order.order import Order
from fulfillment.product.product import Product


@fulfillment.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity}


@fulfillment.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = json.loads(command.items) if isinstance(command.items, str) else command.items
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        try:
            current_domain.repository_for(Customer).get(command.customer_id)
        except ObjectNotFoundError:
            raise ValidationError({"customer_id": ["Customer not found"]})

        product_repo = current_domain.repository_for(Product)
        items_data = []
        for line in lines:
            quantity = int(line.get("quantity", 0))
            if quantity <= 0:
                raise ValidationError({"items": ["Quantity must be positive"]})
            try:
                product = product_repo.get(line["product_id"])
            except ObjectNotFoundError:
                raise ValidationError({"items": [f"Product {line['product_id']} not found"]})
            items_data.append(
                {
                    "product_id": str(product.id),
                    "quantity": quantity,
                    "unit_price_cents": product.price_cents,
                }
            )

        order = Order.place(customer_id=command.customer_id, items_data=items_data)
        current_domain.repository_for(Order).add(order)
        return str(order.id)
