"""Runtime settings for the fulfillment pipeline.

Values come from environment variables so deployments can tune timeouts and
adapters without code changes. Adapter selection follows the same convention
as the carrier adapter: ``fake`` is the default and the only adapter bundled.
"""

import os
from dataclasses import dataclass
from datetime import timedelta


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class FulfillmentSettings:
    reservation_ttl_minutes: int = 30
    shipment_timeout_seconds: float = 5.0
    notification_timeout_seconds: float = 2.0
    analytics_timeout_seconds: float = 2.0
    alert_failure_threshold: int = 3
    dispatch_workers: int = 8
    default_carrier: str = "FedEx"
    carrier_adapter: str = "fake"
    notifier_adapter: str = "fake"
    analytics_adapter: str = "fake"

    @property
    def reservation_ttl(self) -> timedelta:
        return timedelta(minutes=self.reservation_ttl_minutes)

    @classmethod
    def from_env(cls) -> "FulfillmentSettings":
        """Build settings from the process environment, falling back to defaults."""
        return cls(
            reservation_ttl_minutes=_env_int("RESERVATION_TTL_MINUTES", cls.reservation_ttl_minutes),
            shipment_timeout_seconds=_env_float("SHIPMENT_TIMEOUT_SECONDS", cls.shipment_timeout_seconds),
            notification_timeout_seconds=_env_float(
                "NOTIFICATION_TIMEOUT_SECONDS", cls.notification_timeout_seconds
            ),
            analytics_timeout_seconds=_env_float("ANALYTICS_TIMEOUT_SECONDS", cls.analytics_timeout_seconds),
            alert_failure_threshold=_env_int("ALERT_FAILURE_THRESHOLD", cls.alert_failure_threshold),
            dispatch_workers=_env_int("DISPATCH_WORKERS", cls.dispatch_workers),
            default_carrier=os.environ.get("DEFAULT_CARRIER", cls.default_carrier),
            carrier_adapter=os.environ.get("CARRIER_ADAPTER", cls.carrier_adapter),
            notifier_adapter=os.environ.get("NOTIFIER_ADAPTER", cls.notifier_adapter),
            analytics_adapter=os.environ.get("ANALYTICS_ADAPTER", cls.analytics_adapter),
        )
