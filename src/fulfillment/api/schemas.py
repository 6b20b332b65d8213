"""Pydantic API schemas for order fulfillment.

Money leaves the API as decimal strings ("199.99"), never as floats.
"""

from datetime import datetime

from pydantic import BaseModel


class FulfillmentWarningResponse(BaseModel):
    error: str
    stage: str
    reason: str


class FulfillmentOutcomeResponse(BaseModel):
    success: bool
    order_id: str
    status: str | None = None
    stage: str | None = None
    error: str | None = None
    reason: str | None = None
    tracking_number: str | None = None
    warnings: list[FulfillmentWarningResponse] = []
    degraded: bool = False
    stock_affected: bool = False
    compensation_failed: bool = False


class CancelFulfillmentRequest(BaseModel):
    reason: str = "Fulfillment cancelled"


class CancelFulfillmentResponse(BaseModel):
    order_id: str
    cancellation_requested: bool


class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    unit_price: str
    subtotal: str


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    status: str
    total: str
    items: list[OrderItemResponse]
    failed_stage: str | None = None
    failure_reason: str | None = None
    tracking_number: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
