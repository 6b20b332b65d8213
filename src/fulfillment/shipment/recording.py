"""Shipment recording — command and handler.

Records the carrier's shipment against the order. Refuses a second shipment
for the same order and any reuse of a tracking number.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.shipment.shipment import Shipment


@fulfillment.command(part_of="Shipment")
class RecordShipment:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=255)
    carrier = String(required=True, max_length=100)
    carrier_shipment_id = String(max_length=255)
    label_url = String(max_length=500)
    estimated_delivery = DateTime()


@fulfillment.command_handler(part_of=Shipment)
class RecordShipmentHandler:
    @handle(RecordShipment)
    def record_shipment(self, command):
        repo = current_domain.repository_for(Shipment)

        if repo._dao.query.filter(order_id=str(command.order_id)).all().items:
            raise ValidationError({"order_id": ["A shipment already exists for this order"]})
        if repo._dao.query.filter(tracking_number=command.tracking_number).all().items:
            raise ValidationError({"tracking_number": ["Tracking number is already in use"]})

        shipment = Shipment.create(
            order_id=command.order_id,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            carrier_shipment_id=command.carrier_shipment_id,
            label_url=command.label_url,
            estimated_delivery=command.estimated_delivery,
        )
        repo.add(shipment)
        return str(shipment.id)
