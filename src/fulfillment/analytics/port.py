"""Analytics port — records a fulfilled order with the analytics service."""

from abc import ABC, abstractmethod


class AnalyticsPort(ABC):
    @abstractmethod
    def record(self, order_id: str, payload: dict) -> dict:
        """Record the order.

        Returns:
            dict with keys: recorded (bool), error (optional)
        """
        ...
