"""Inventory reservation events."""

from protean.fields import DateTime, Identifier, Integer, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="InventoryReservation")
class StockReserved:
    """Stock was provisionally held for an order."""

    __version__ = 1

    reservation_id = Identifier(required=True)
    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)


@fulfillment.event(part_of="InventoryReservation")
class ReservationReleased:
    """A hold was given back; its quantity returned to available stock."""

    __version__ = 1

    reservation_id = Identifier(required=True)
    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(required=True)
    released_at = DateTime(required=True)


@fulfillment.event(part_of="InventoryReservation")
class ReservationCommitted:
    """A hold became a permanent stock decrement (the order shipped)."""

    __version__ = 1

    reservation_id = Identifier(required=True)
    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    committed_at = DateTime(required=True)
