"""The order fulfillment pipeline and its wiring."""

from fulfillment.analytics import build_analytics
from fulfillment.carrier import build_carrier
from fulfillment.config import FulfillmentSettings
from fulfillment.inventory.store import InventoryStore
from fulfillment.notification import build_notifier
from fulfillment.observability import build_observer
from fulfillment.pipeline.cancellation import CancellationToken
from fulfillment.pipeline.service import OrderFulfillment
from fulfillment.pipeline.stages import FulfillmentError, FulfillmentOutcome, FulfillmentStage

__all__ = [
    "CancellationToken",
    "FulfillmentError",
    "FulfillmentOutcome",
    "FulfillmentStage",
    "OrderFulfillment",
    "build_fulfillment_service",
]


def build_fulfillment_service(domain, settings: FulfillmentSettings | None = None, **overrides) -> OrderFulfillment:
    """Wire an ``OrderFulfillment`` from settings.

    Any collaborator (``inventory``, ``carrier``, ``notifier``, ``analytics``,
    ``observer``) can be passed in to replace the one built from settings.
    """
    settings = settings or FulfillmentSettings.from_env()
    return OrderFulfillment(
        domain=domain,
        inventory=overrides.get("inventory") or InventoryStore(domain, reservation_ttl=settings.reservation_ttl),
        carrier=overrides.get("carrier") or build_carrier(settings),
        notifier=overrides.get("notifier") or build_notifier(settings),
        analytics=overrides.get("analytics") or build_analytics(settings),
        observer=overrides.get("observer") or build_observer(settings),
        settings=settings,
    )
