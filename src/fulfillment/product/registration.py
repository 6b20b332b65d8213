"""Product registration — command and handler."""

from protean import handle
from protean.fields import Integer, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.product.product import Product


@fulfillment.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    description = Text()
    price_cents = Integer(required=True, min_value=0)
    stock_quantity = Integer(default=0, min_value=0)


@fulfillment.command_handler(part_of=Product)
class RegisterProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            name=command.name,
            description=command.description,
            price_cents=command.price_cents,
            stock_quantity=command.stock_quantity or 0,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)
