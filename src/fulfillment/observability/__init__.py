"""Observability sinks for the fulfillment pipeline."""

from fulfillment.observability.port import AlertSeverity, ObserverPort, StageTransition
from fulfillment.observability.structlog_observer import StructlogObserver

__all__ = ["AlertSeverity", "ObserverPort", "StageTransition", "StructlogObserver", "build_observer"]


def build_observer(settings) -> ObserverPort:
    return StructlogObserver(failure_threshold=settings.alert_failure_threshold)
