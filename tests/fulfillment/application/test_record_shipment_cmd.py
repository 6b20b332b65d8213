"""Application tests for shipment recording."""

import pytest
from fulfillment.shipment.recording import RecordShipment
from fulfillment.shipment.shipment import Shipment, ShipmentStatus
from protean import current_domain
from protean.exceptions import ValidationError


def _record(order_id="ord-1", tracking_number="TRK1"):
    return current_domain.process(
        RecordShipment(order_id=order_id, tracking_number=tracking_number, carrier="FedEx"),
        asynchronous=False,
    )


def test_persists_shipment():
    shipment = current_domain.repository_for(Shipment).get(_record())
    assert shipment.tracking_number == "TRK1"
    assert shipment.carrier == "FedEx"
    assert shipment.status == ShipmentStatus.PROCESSING.value


def test_one_shipment_per_order():
    _record()
    with pytest.raises(ValidationError) as exc:
        _record(tracking_number="TRK2")
    assert "order_id" in exc.value.messages


def test_tracking_numbers_are_unique():
    _record()
    with pytest.raises(ValidationError) as exc:
        _record(order_id="ord-2")
    assert "tracking_number" in exc.value.messages
