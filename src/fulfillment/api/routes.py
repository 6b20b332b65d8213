"""FastAPI routes for order fulfillment."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError

from fulfillment.api.schemas import (
    CancelFulfillmentRequest,
    CancelFulfillmentResponse,
    FulfillmentOutcomeResponse,
    OrderItemResponse,
    OrderResponse,
)
from fulfillment.money import format_amount
from fulfillment.order.order import Order
from fulfillment.pipeline.stages import FulfillmentError

_STATUS_CODES = {
    FulfillmentError.ORDER_NOT_FOUND.value: 404,
    FulfillmentError.INVALID_STATE.value: 409,
    FulfillmentError.ALREADY_IN_PROGRESS.value: 409,
}

order_router = APIRouter(prefix="/orders", tags=["orders"])


def _service(request: Request):
    return request.app.state.fulfillment


@order_router.post("/{order_id}/fulfill", response_model=FulfillmentOutcomeResponse)
def fulfill_order(order_id: str, request: Request):
    """Run the fulfillment pipeline for an order.

    Blocks until the order is Completed or Failed. Runs in FastAPI's
    threadpool because the pipeline waits on external collaborators.
    """
    outcome = _service(request).fulfill(order_id)
    body = FulfillmentOutcomeResponse(**outcome.to_dict())
    status_code = 200 if outcome.success else _STATUS_CODES.get(outcome.error, 400)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@order_router.post("/{order_id}/cancel", status_code=202, response_model=CancelFulfillmentResponse)
def cancel_fulfillment(order_id: str, request: Request, body: CancelFulfillmentRequest | None = None):
    """Request cancellation of an in-flight fulfillment."""
    reason = body.reason if body else CancelFulfillmentRequest().reason
    requested = _service(request).cancel(order_id, reason=reason)
    return CancelFulfillmentResponse(order_id=order_id, cancellation_requested=requested)


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, request: Request) -> OrderResponse:
    domain = _service(request).domain
    with domain.domain_context():
        try:
            order = domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            raise HTTPException(status_code=404, detail="Order not found")
        return _order_response(order)


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        total=format_amount(order.total_cents),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                quantity=item.quantity,
                unit_price=format_amount(item.unit_price_cents),
                subtotal=format_amount(item.subtotal_cents()),
            )
            for item in order.items
        ],
        failed_stage=order.failed_stage,
        failure_reason=order.failure_reason,
        tracking_number=order.tracking_number,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )
