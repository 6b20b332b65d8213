"""Carrier port — the interface the fulfillment pipeline ships through.

Adapters are chosen by configuration; the pipeline only ever sees this port.
"""

from abc import ABC, abstractmethod


class CarrierPort(ABC):
    @abstractmethod
    def create_shipment(
        self,
        order_id: str,
        carrier: str,
        items: list[dict],
        service_level: str = "Standard",
    ) -> dict:
        """Book a shipment for an order's items.

        ``items`` entries carry product_id and quantity.

        Returns:
            dict with keys: shipment_id, tracking_number, carrier, label_url,
            estimated_delivery. On failure the same keys are None and
            ``error`` holds the carrier's reason.
        """
        ...

    @abstractmethod
    def cancel_shipment(self, tracking_number: str) -> dict:
        """Cancel a shipment that is no longer wanted.

        Returns:
            dict with keys: cancelled (bool), reason (str)
        """
        ...
