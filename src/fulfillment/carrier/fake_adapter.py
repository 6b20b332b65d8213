"""Fake carrier adapter — deterministic carrier for tests and local runs.

Tracking numbers follow the ``TRK<timestamp><suffix>`` shape. Failure, a raised
exception and an artificial delay can all be switched on per test.
"""

import threading
import time
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from fulfillment.carrier.port import CarrierPort

_DELIVERY_DAYS = {"Standard": 5, "Express": 2, "Overnight": 1}


class FakeCarrier(CarrierPort):
    """Carrier that books every shipment unless configured otherwise."""

    def __init__(self):
        self.shipments: dict[str, dict] = {}
        self.cancelled: list[str] = []
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        delay_seconds: float = 0.0,
        raises: Exception | None = None,
        before_create=None,
    ):
        """Set the behaviour of the next calls.

        ``before_create`` is called with the order id before anything else
        happens, which lets a test act while the carrier call is in flight.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds
        self.raises = raises
        self.before_create = before_create

    def reset(self):
        self.shipments.clear()
        self.cancelled.clear()
        self.calls = 0
        self.release_event = threading.Event()
        self.configure()

    def hold_until_released(self):
        """Block every create_shipment call until ``release()`` is called."""
        self.release_event.clear()
        self.delay_seconds = None

    def release(self):
        self.release_event.set()

    def create_shipment(
        self,
        order_id: str,
        carrier: str,
        items: list[dict],
        service_level: str = "Standard",
    ) -> dict:
        self.calls += 1
        if self.before_create is not None:
            self.before_create(order_id)

        if self.delay_seconds is None:
            self.release_event.wait()
        elif self.delay_seconds:
            time.sleep(self.delay_seconds)

        if self.raises is not None:
            raise self.raises

        if not self.should_succeed:
            return {
                "shipment_id": None,
                "tracking_number": None,
                "carrier": carrier,
                "label_url": None,
                "estimated_delivery": None,
                "error": self.failure_reason,
            }

        tracking_number = f"TRK{int(time.time() * 1000)}{uuid4().hex[:9].upper()}"
        shipment_id = f"ship-{uuid4().hex[:8]}"
        estimated_delivery = datetime.now(UTC) + timedelta(days=_DELIVERY_DAYS.get(service_level, 5))

        result = {
            "shipment_id": shipment_id,
            "tracking_number": tracking_number,
            "carrier": carrier,
            "label_url": f"https://fake-carrier.example.com/labels/{shipment_id}.pdf",
            "estimated_delivery": estimated_delivery.isoformat(),
        }
        self.shipments[tracking_number] = {
            "order_id": str(order_id),
            "items": list(items),
            "service_level": service_level,
            **result,
        }
        return result

    def cancel_shipment(self, tracking_number: str) -> dict:
        if tracking_number not in self.shipments:
            return {"cancelled": False, "reason": "Unknown tracking number"}
        self.shipments.pop(tracking_number)
        self.cancelled.append(tracking_number)
        return {"cancelled": True, "reason": "Shipment cancelled successfully"}
