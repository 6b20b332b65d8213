"""Fake notifier — records notifications in memory for test assertions."""

import time
from uuid import uuid4

from fulfillment.notification.port import NotifierPort


class FakeNotifier(NotifierPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Notification delivery failed",
        delay_seconds: float = 0.0,
        raises: Exception | None = None,
    ):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds
        self.raises = raises

    def notify(self, order_id: str, contact: str, tracking_number: str) -> dict:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if self.raises is not None:
            raise self.raises
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"notify-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "order_id": str(order_id),
                "contact": contact,
                "tracking_number": tracking_number,
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent notifications and restore default behaviour."""
        self.sent.clear()
        self.configure()
