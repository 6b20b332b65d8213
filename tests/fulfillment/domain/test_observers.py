"""Tests for the observability sinks."""

from fulfillment.config import FulfillmentSettings
from fulfillment.observability import build_observer
from fulfillment.observability.fake_observer import FakeObserver
from fulfillment.observability.port import AlertSeverity, StageTransition
from fulfillment.observability.structlog_observer import StructlogObserver
from structlog.testing import capture_logs


class RecordingObserver(StructlogObserver):
    def __init__(self, failure_threshold=3):
        super().__init__(failure_threshold)
        self.raised = []

    def alert(self, condition, severity, message, **context):
        self.raised.append((condition, severity))
        super().alert(condition, severity, message, **context)


def _transition(stage="shipment", succeeded=False, order_id="ord-1"):
    return StageTransition(
        order_id=order_id,
        stage=stage,
        from_status="Processing",
        to_status="Failed" if not succeeded else "Shipped",
        duration_ms=12.5,
        succeeded=succeeded,
        reason=None if succeeded else "Carrier unavailable",
    )


class TestStageTransition:
    def test_to_dict(self):
        data = _transition().to_dict()
        assert data["stage"] == "shipment"
        assert data["succeeded"] is False
        assert isinstance(data["occurred_at"], str)


class TestStructlogObserver:
    def test_alerts_when_threshold_reached(self):
        observer = RecordingObserver(failure_threshold=3)
        for i in range(3):
            observer.stage_transition(_transition(order_id=f"ord-{i}"))
        assert observer.raised == [("repeated_stage_failure", AlertSeverity.HIGH)]

    def test_no_alert_below_threshold(self):
        observer = RecordingObserver(failure_threshold=3)
        observer.stage_transition(_transition())
        observer.stage_transition(_transition())
        assert observer.raised == []
        assert observer.consecutive_failures("shipment") == 2

    def test_success_resets_the_count(self):
        observer = RecordingObserver(failure_threshold=3)
        observer.stage_transition(_transition())
        observer.stage_transition(_transition())
        observer.stage_transition(_transition(succeeded=True))
        observer.stage_transition(_transition())
        assert observer.raised == []
        assert observer.consecutive_failures("shipment") == 1

    def test_stages_are_counted_separately(self):
        observer = RecordingObserver(failure_threshold=2)
        observer.stage_transition(_transition(stage="payment"))
        observer.stage_transition(_transition(stage="shipment"))
        assert observer.raised == []

    def test_logs_transition_fields(self):
        with capture_logs() as logs:
            StructlogObserver().stage_transition(_transition(succeeded=True))
        entry = logs[0]
        assert entry["event"] == "Fulfillment stage transition"
        assert entry["order_id"] == "ord-1"
        assert entry["log_level"] == "info"

    def test_critical_alert_logs_at_critical(self):
        with capture_logs() as logs:
            StructlogObserver().alert("compensation_failed", AlertSeverity.CRITICAL, "Stock not restored", order_id="o")
        assert logs[0]["log_level"] == "critical"
        assert logs[0]["alert"] == "compensation_failed"

    def test_build_observer_uses_threshold(self):
        observer = build_observer(FulfillmentSettings(alert_failure_threshold=7))
        assert observer.failure_threshold == 7


class TestFakeObserver:
    def test_records(self):
        observer = FakeObserver()
        observer.stage_transition(_transition())
        observer.metric("fulfillment.failed", 1, {"stage": "shipment"})
        observer.alert("x", AlertSeverity.LOW, "msg", order_id="ord-1")
        assert len(observer.transitions_for("ord-1")) == 1
        assert observer.metric_names() == ["fulfillment.failed"]
        assert observer.alerts[0]["order_id"] == "ord-1"
