"""In-memory observer for test assertions."""

import threading

from fulfillment.observability.port import AlertSeverity, ObserverPort, StageTransition


class FakeObserver(ObserverPort):
    def __init__(self):
        self._lock = threading.Lock()
        self.transitions: list[StageTransition] = []
        self.metrics: list[tuple[str, float, dict]] = []
        self.alerts: list[dict] = []
        self.raises: Exception | None = None

    def stage_transition(self, transition: StageTransition) -> None:
        if self.raises is not None:
            raise self.raises
        with self._lock:
            self.transitions.append(transition)

    def metric(self, name: str, value: float, tags: dict | None = None) -> None:
        if self.raises is not None:
            raise self.raises
        with self._lock:
            self.metrics.append((name, value, dict(tags or {})))

    def alert(self, condition: str, severity: AlertSeverity, message: str, **context) -> None:
        if self.raises is not None:
            raise self.raises
        with self._lock:
            self.alerts.append({"condition": condition, "severity": severity, "message": message, **context})

    def transitions_for(self, order_id: str) -> list[StageTransition]:
        return [t for t in self.transitions if t.order_id == str(order_id)]

    def metric_names(self) -> list[str]:
        return [name for name, _, _ in self.metrics]

    def reset(self):
        with self._lock:
            self.transitions.clear()
            self.metrics.clear()
            self.alerts.clear()
        self.raises = None
