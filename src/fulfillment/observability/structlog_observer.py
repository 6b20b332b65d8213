"""Structlog observer — transitions, metrics and alerts as structured log lines.

Also watches for repeated failures: when the same stage fails
``failure_threshold`` times in a row (across orders), a HIGH alert is raised.
A success at that stage resets its count.
"""

import threading

import structlog

from fulfillment.observability.port import AlertSeverity, ObserverPort, StageTransition

logger = structlog.get_logger("fulfillment.observability")

_ALERT_LEVELS = {
    AlertSeverity.LOW: "info",
    AlertSeverity.MEDIUM: "warning",
    AlertSeverity.HIGH: "error",
    AlertSeverity.CRITICAL: "critical",
}


class StructlogObserver(ObserverPort):
    def __init__(self, failure_threshold: int = 3):
        self.failure_threshold = failure_threshold
        self._lock = threading.Lock()
        self._consecutive_failures: dict[str, int] = {}

    def stage_transition(self, transition: StageTransition) -> None:
        log = logger.info if transition.succeeded else logger.warning
        log("Fulfillment stage transition", **transition.to_dict())

        with self._lock:
            if transition.succeeded:
                self._consecutive_failures.pop(transition.stage, None)
                return
            count = self._consecutive_failures.get(transition.stage, 0) + 1
            self._consecutive_failures[transition.stage] = count

        if count == self.failure_threshold:
            self.alert(
                "repeated_stage_failure",
                AlertSeverity.HIGH,
                f"Stage {transition.stage} failed {count} times in a row",
                stage=transition.stage,
                last_order_id=transition.order_id,
                last_reason=transition.reason,
            )

    def metric(self, name: str, value: float, tags: dict | None = None) -> None:
        logger.info("metric", metric=name, value=value, tags=tags or {})

    def alert(self, condition: str, severity: AlertSeverity, message: str, **context) -> None:
        log = getattr(logger, _ALERT_LEVELS[severity])
        log(message, alert=condition, severity=severity.value, **context)

    def consecutive_failures(self, stage: str) -> int:
        with self._lock:
            return self._consecutive_failures.get(stage, 0)
