"""Notifier port — tells the customer their order has shipped."""

from abc import ABC, abstractmethod


class NotifierPort(ABC):
    @abstractmethod
    def notify(self, order_id: str, contact: str, tracking_number: str) -> dict:
        """Send the shipment notification.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
