"""Shipment aggregate — the carrier handoff record for an order.

Created exactly once per order, during fulfillment, after payment has been
confirmed. Tracking numbers are unique across shipments.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String

from fulfillment.domain import fulfillment
from fulfillment.shipment.events import ShipmentCreated


class ShipmentStatus(Enum):
    PROCESSING = "Processing"
    IN_TRANSIT = "In_Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


@fulfillment.aggregate
class Shipment:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=255)
    carrier = String(required=True, max_length=100)
    status = String(
        max_length=20,
        choices=ShipmentStatus,
        default=ShipmentStatus.PROCESSING.value,
    )
    carrier_shipment_id = String(max_length=255)
    label_url = String(max_length=500)
    estimated_delivery = DateTime()
    created_at = DateTime()

    @classmethod
    def create(
        cls,
        order_id: str,
        tracking_number: str,
        carrier: str,
        carrier_shipment_id: str | None = None,
        label_url: str | None = None,
        estimated_delivery: datetime | None = None,
    ):
        now = datetime.now(UTC)
        shipment = cls(
            order_id=order_id,
            tracking_number=tracking_number,
            carrier=carrier,
            status=ShipmentStatus.PROCESSING.value,
            carrier_shipment_id=carrier_shipment_id,
            label_url=label_url,
            estimated_delivery=estimated_delivery,
            created_at=now,
        )
        shipment.raise_(
            ShipmentCreated(
                shipment_id=str(shipment.id),
                order_id=str(order_id),
                carrier=carrier,
                tracking_number=tracking_number,
                created_at=now,
            )
        )
        return shipment
