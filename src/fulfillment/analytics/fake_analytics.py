"""Fake analytics sink — keeps recorded payloads in memory."""

import time

from fulfillment.analytics.port import AnalyticsPort


class FakeAnalytics(AnalyticsPort):
    def __init__(self):
        self.records: list[dict] = []
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Analytics service unavailable",
        delay_seconds: float = 0.0,
        raises: Exception | None = None,
    ):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds
        self.raises = raises

    def record(self, order_id: str, payload: dict) -> dict:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if self.raises is not None:
            raise self.raises
        if not self.should_succeed:
            return {"recorded": False, "error": self.failure_reason}

        self.records.append({"order_id": str(order_id), **payload})
        return {"recorded": True}

    def reset(self):
        self.records.clear()
        self.configure()
