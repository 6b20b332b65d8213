"""Shipment domain events."""

from protean.fields import DateTime, Identifier, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Shipment")
class ShipmentCreated:
    """The carrier accepted the order and issued a tracking number."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier = String(required=True)
    tracking_number = String(required=True)
    created_at = DateTime(required=True)
