"""Product domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Product")
class ProductRegistered:
    """A product was added to the catalogue with its opening stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price_cents = Integer(required=True)
    stock_quantity = Integer(required=True)
    registered_at = DateTime(required=True)


@fulfillment.event(part_of="Product")
class StockLevelChanged:
    """Available stock moved because a reservation was taken or given back."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)  # "reserved" | "released"
    quantity = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    changed_at = DateTime(required=True)
