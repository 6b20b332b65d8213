"""Order domain events — facts about an order's progress through fulfillment."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Order")
class OrderPlaced:
    """An order was placed with prices captured from the catalogue."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity, unit_price_cents}
    item_count = Integer(required=True)
    total_cents = Integer(required=True)
    placed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class FulfillmentAdvanced:
    """The order moved one step forward in the fulfillment pipeline."""

    __version__ = 1

    order_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    advanced_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class FulfillmentFailed:
    """Fulfillment stopped at a stage; the order is now terminal."""

    __version__ = 1

    order_id = Identifier(required=True)
    from_status = String(required=True)
    stage = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderCompleted:
    """The order was shipped and fulfillment finished."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    total_cents = Integer(required=True)
    completed_at = DateTime(required=True)
