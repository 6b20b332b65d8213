"""Fulfillment stages, error kinds and the outcome returned to callers."""

from dataclasses import asdict, dataclass, field
from enum import Enum


class FulfillmentStage(Enum):
    VALIDATE = "validate"
    INVENTORY_CHECK = "inventory_check"
    INVENTORY_RESERVE = "inventory_reserve"
    PAYMENT = "payment"
    PROCESSING = "processing"
    SHIPMENT = "shipment"
    NOTIFY = "notify"
    ANALYTICS = "analytics"
    COMPLETE = "complete"


class FulfillmentError(Enum):
    ORDER_NOT_FOUND = "order_not_found"
    INVALID_STATE = "invalid_state"
    ALREADY_IN_PROGRESS = "already_in_progress"
    VALIDATION_FAILED = "validation_failed"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    PAYMENT_MISMATCH = "payment_mismatch"
    SHIPMENT_GATEWAY_FAILURE = "shipment_gateway_failure"
    NOTIFICATION_FAILURE = "notification_failure"
    ANALYTICS_FAILURE = "analytics_failure"
    CANCELLED = "cancelled"
    PERSISTENCE_FAILURE = "persistence_failure"


# Failures that never change the order's state
REJECTIONS = frozenset(
    {
        FulfillmentError.ORDER_NOT_FOUND,
        FulfillmentError.INVALID_STATE,
        FulfillmentError.ALREADY_IN_PROGRESS,
    }
)


class StageFailure(Exception):
    """Raised inside the pipeline to stop the run at ``stage``."""

    def __init__(self, stage: FulfillmentStage, error: FulfillmentError, reason: str):
        self.stage = stage
        self.error = error
        self.reason = reason
        super().__init__(reason)


@dataclass
class FulfillmentOutcome:
    success: bool
    order_id: str
    status: str | None = None
    stage: str | None = None
    error: str | None = None
    reason: str | None = None
    tracking_number: str | None = None
    warnings: list[dict] = field(default_factory=list)
    stock_affected: bool = False
    compensation_failed: bool = False

    @property
    def degraded(self) -> bool:
        """Completed, but a non-critical side effect did not happen."""
        return self.success and bool(self.warnings)

    @classmethod
    def rejected(cls, order_id: str, error: FulfillmentError, reason: str, status: str | None = None):
        return cls(success=False, order_id=str(order_id), status=status, error=error.value, reason=reason)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["degraded"] = self.degraded
        return data
