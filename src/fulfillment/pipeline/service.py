"""Order fulfillment — drives one order from Pending to Completed.

Stages run strictly in sequence:

    validate → inventory_check → inventory_reserve → payment → processing
    → shipment → notify + analytics → complete

Any failure up to and including the shipment stage moves the order to
``Failed(stage, reason)`` and gives back every reservation the run made.
Notification and analytics run after the shipment exists; their failures
are reported as warnings on a successful outcome.

Only one run per order is allowed at a time. A second call for an order
that is already being fulfilled is rejected straight away, without waiting
and without touching the order.
"""

import time
from concurrent import futures
from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError

from fulfillment.customer.customer import Customer
from fulfillment.inventory.store import InsufficientStock, ReservationFailed, UnknownProduct
from fulfillment.money import format_amount
from fulfillment.observability.port import AlertSeverity, StageTransition
from fulfillment.order.order import Order, OrderStatus
from fulfillment.payment.confirmation import confirm_payment
from fulfillment.payment.recording import payments_for
from fulfillment.pipeline.cancellation import CancellationToken
from fulfillment.pipeline.stages import FulfillmentError, FulfillmentOutcome, FulfillmentStage, StageFailure
from fulfillment.product.product import Product
from fulfillment.shipment.recording import RecordShipment
from fulfillment.shipment.shipment import Shipment
from fulfillment.utils.locks import InFlightRegistry
from fulfillment.utils.logging import order_context

logger = structlog.get_logger(__name__)


class _Run:
    """Mutable bookkeeping for a single fulfillment run."""

    def __init__(self, order_id: str, cancellation: CancellationToken):
        self.order_id = order_id
        self.cancellation = cancellation
        self.stage = FulfillmentStage.VALIDATE
        self.status = OrderStatus.PENDING.value
        self.reservation_ids: list[str] = []
        self.compensation_failures: list[str] = []
        self.tracking_number: str | None = None
        self.carrier: str | None = None
        self.shipment_id: str | None = None
        self.warnings: list[dict] = []
        self.started = time.perf_counter()


class OrderFulfillment:
    def __init__(self, domain, inventory, carrier, notifier, analytics, observer, settings):
        self.domain = domain
        self.inventory = inventory
        self.carrier = carrier
        self.notifier = notifier
        self.analytics = analytics
        self.observer = observer
        self.settings = settings

        self._in_flight = InFlightRegistry()
        self._tokens: dict[str, CancellationToken] = {}
        # Carrier calls never queue behind notification or analytics calls that are stuck
        self._carrier_executor = futures.ThreadPoolExecutor(
            max_workers=settings.dispatch_workers,
            thread_name_prefix="fulfillment-carrier",
        )
        self._side_effect_executor = futures.ThreadPoolExecutor(
            max_workers=settings.dispatch_workers * 2,
            thread_name_prefix="fulfillment-side-effects",
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the dispatch pools. Late carrier responses are handled before this returns."""
        self._carrier_executor.shutdown(wait=wait)
        self._side_effect_executor.shutdown(wait=wait)

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------
    def fulfill(self, order_id, cancellation: CancellationToken | None = None) -> FulfillmentOutcome:
        """Run the fulfillment pipeline for one order. Never raises."""
        order_id = str(order_id)
        if not self._in_flight.claim(order_id):
            logger.warning("Fulfillment already in progress", order_id=order_id)
            return FulfillmentOutcome.rejected(
                order_id,
                FulfillmentError.ALREADY_IN_PROGRESS,
                "Fulfillment is already in progress for this order",
            )

        token = cancellation or CancellationToken()
        self._tokens[order_id] = token
        try:
            with self.domain.domain_context(), order_context(order_id):
                return self._run(_Run(order_id, token))
        finally:
            self._tokens.pop(order_id, None)
            self._in_flight.release(order_id)

    def cancel(self, order_id, reason: str = "Fulfillment cancelled") -> bool:
        """Ask the running fulfillment of an order to stop at its next stage.

        Returns False when no run is in flight for the order.
        """
        token = self._tokens.get(str(order_id))
        if token is None:
            return False
        token.cancel(reason)
        logger.info("Fulfillment cancellation requested", order_id=str(order_id))
        return True

    def _run(self, run: _Run) -> FulfillmentOutcome:
        try:
            order = self.domain.repository_for(Order).get(run.order_id)
        except ObjectNotFoundError:
            logger.info("Order not found")
            return FulfillmentOutcome.rejected(run.order_id, FulfillmentError.ORDER_NOT_FOUND, "Order not found")

        if order.status != OrderStatus.PENDING.value:
            logger.info("Order is not pending", status=order.status)
            return FulfillmentOutcome.rejected(
                run.order_id,
                FulfillmentError.INVALID_STATE,
                f"Order is not in pending state. Current status: {order.status}",
                status=order.status,
            )

        if run.cancellation.is_cancelled:
            return FulfillmentOutcome.rejected(
                run.order_id, FulfillmentError.CANCELLED, run.cancellation.reason, status=order.status
            )

        logger.info("Fulfillment started", total=format_amount(order.total_cents))
        try:
            self._validate(run, order)
            demand = self._check_inventory(run, order)
            self._reserve(run, demand)
            self._confirm_payment(run, order)
            self._start_processing(run)
            self._ship(run, order)
        except StageFailure as failure:
            return self._fail(run, failure)
        except Exception as exc:
            logger.exception("Unexpected error during fulfillment", stage=run.stage.value)
            return self._fail(run, StageFailure(run.stage, FulfillmentError.PERSISTENCE_FAILURE, str(exc)))

        self._notify_and_record(run, order)
        return self._complete(run)

    # -------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------
    def _validate(self, run: _Run, order) -> None:
        self._begin(run, FulfillmentStage.VALIDATE)
        started = time.perf_counter()
        self._transition(run, lambda o: o.advance_to(OrderStatus.VALIDATING))

        if not order.items:
            raise StageFailure(run.stage, FulfillmentError.VALIDATION_FAILED, "Order has no items")
        try:
            self.domain.repository_for(Customer).get(order.customer_id)
        except ObjectNotFoundError:
            raise StageFailure(
                run.stage,
                FulfillmentError.VALIDATION_FAILED,
                f"Order owner {order.customer_id} is not a registered customer",
            )
        if order.items_total_cents() != order.total_cents:
            raise StageFailure(run.stage, FulfillmentError.VALIDATION_FAILED, "Order total does not match its items")

        self._stage_succeeded(run, OrderStatus.PENDING.value, started)

    def _check_inventory(self, run: _Run, order) -> list[tuple[str, int]]:
        self._begin(run, FulfillmentStage.INVENTORY_CHECK)
        started = time.perf_counter()

        # Lines for the same product are checked and reserved as one quantity
        demand: dict[str, int] = {}
        for item in order.items:
            demand[str(item.product_id)] = demand.get(str(item.product_id), 0) + item.quantity

        product_repo = self.domain.repository_for(Product)
        for product_id, quantity in demand.items():
            try:
                product = product_repo.get(product_id)
            except ObjectNotFoundError:
                raise StageFailure(run.stage, FulfillmentError.VALIDATION_FAILED, f"Product {product_id} not found")
            if not product.has_stock_for(quantity):
                raise StageFailure(
                    run.stage,
                    FulfillmentError.INSUFFICIENT_INVENTORY,
                    f"Insufficient inventory for product {product.name}. "
                    f"Requested: {quantity}, Available: {product.stock_quantity}",
                )

        from_status = run.status
        self._transition(run, lambda o: o.advance_to(OrderStatus.INVENTORY_CHECKED))
        self._stage_succeeded(run, from_status, started)
        return list(demand.items())

    def _reserve(self, run: _Run, demand: list[tuple[str, int]]) -> None:
        self._begin(run, FulfillmentStage.INVENTORY_RESERVE)
        started = time.perf_counter()

        try:
            run.reservation_ids = self.inventory.reserve_all(run.order_id, demand)
        except ReservationFailed as exc:
            run.compensation_failures.extend(exc.compensation_failures)
            if isinstance(exc.cause, InsufficientStock):
                error = FulfillmentError.INSUFFICIENT_INVENTORY
            elif isinstance(exc.cause, UnknownProduct):
                error = FulfillmentError.VALIDATION_FAILED
            else:
                error = FulfillmentError.PERSISTENCE_FAILURE
            raise StageFailure(run.stage, error, str(exc)) from exc

        from_status = run.status
        self._transition(run, lambda o: o.advance_to(OrderStatus.INVENTORY_RESERVED))
        self._stage_succeeded(run, from_status, started)

    def _confirm_payment(self, run: _Run, order) -> None:
        self._begin(run, FulfillmentStage.PAYMENT)
        started = time.perf_counter()

        check = confirm_payment(payments_for(run.order_id), order.total_cents)
        if not check.confirmed:
            raise StageFailure(run.stage, FulfillmentError.PAYMENT_MISMATCH, check.reason)

        from_status = run.status
        self._transition(run, lambda o: o.confirm_payment(check.payment_id))
        self._stage_succeeded(run, from_status, started)

    def _start_processing(self, run: _Run) -> None:
        self._begin(run, FulfillmentStage.PROCESSING)
        started = time.perf_counter()
        from_status = run.status
        self._transition(run, lambda o: o.advance_to(OrderStatus.PROCESSING))
        self._stage_succeeded(run, from_status, started)

    def _ship(self, run: _Run, order) -> None:
        self._begin(run, FulfillmentStage.SHIPMENT)
        started = time.perf_counter()

        result = self._book_shipment(run, order)
        run.tracking_number = result["tracking_number"]
        run.carrier = result.get("carrier") or self.settings.default_carrier

        try:
            run.shipment_id = self.domain.process(
                RecordShipment(
                    order_id=run.order_id,
                    tracking_number=result["tracking_number"],
                    carrier=run.carrier,
                    carrier_shipment_id=result.get("shipment_id"),
                    label_url=result.get("label_url"),
                    estimated_delivery=_parse_datetime(result.get("estimated_delivery")),
                ),
                asynchronous=False,
            )
        except Exception as exc:
            logger.exception("Failed to record shipment", tracking_number=run.tracking_number)
            raise StageFailure(
                run.stage, FulfillmentError.PERSISTENCE_FAILURE, f"Shipment could not be recorded: {exc}"
            ) from exc

        from_status = run.status
        self._transition(run, lambda o: o.mark_shipped(result["tracking_number"]))

        # Past this point the stock leaves the warehouse; reservations become permanent
        failed_commits = self.inventory.commit_all(run.reservation_ids)
        run.reservation_ids = failed_commits
        if failed_commits:
            self._observe(
                "alert",
                "reservation_commit_failed",
                AlertSeverity.HIGH,
                "Shipped order still has active reservations",
                order_id=run.order_id,
                reservation_ids=failed_commits,
            )
            run.warnings.append(
                {
                    "error": FulfillmentError.PERSISTENCE_FAILURE.value,
                    "stage": FulfillmentStage.SHIPMENT.value,
                    "reason": f"{len(failed_commits)} reservation(s) could not be committed",
                }
            )

        self._stage_succeeded(run, from_status, started)

    def _book_shipment(self, run: _Run, order) -> dict:
        items = [{"product_id": str(item.product_id), "quantity": item.quantity} for item in order.items]
        timeout = self.settings.shipment_timeout_seconds
        future = self._carrier_executor.submit(
            self.carrier.create_shipment,
            run.order_id,
            self.settings.default_carrier,
            items,
            "Standard",
        )

        try:
            result = future.result(timeout=timeout)
        except futures.TimeoutError:
            if not future.cancel():
                future.add_done_callback(self._cancel_late_shipment(run.order_id))
            raise StageFailure(
                run.stage,
                FulfillmentError.SHIPMENT_GATEWAY_FAILURE,
                f"Carrier did not respond within {timeout:g}s",
            )
        except Exception as exc:
            logger.exception("Carrier call failed")
            raise StageFailure(
                run.stage, FulfillmentError.SHIPMENT_GATEWAY_FAILURE, f"Carrier error: {exc}"
            ) from exc

        if result.get("error") or not result.get("tracking_number"):
            raise StageFailure(
                run.stage,
                FulfillmentError.SHIPMENT_GATEWAY_FAILURE,
                result.get("error") or "Carrier returned no tracking number",
            )
        return result

    def _cancel_late_shipment(self, order_id: str):
        def callback(future):
            if future.cancelled() or future.exception() is not None:
                return
            tracking_number = (future.result() or {}).get("tracking_number")
            if not tracking_number:
                return
            try:
                response = self.carrier.cancel_shipment(tracking_number)
            except Exception:
                logger.exception("Could not cancel late shipment", order_id=order_id, tracking_number=tracking_number)
                self._observe(
                    "alert",
                    "orphaned_shipment",
                    AlertSeverity.HIGH,
                    "Carrier created a shipment after the order failed",
                    order_id=order_id,
                    tracking_number=tracking_number,
                )
                return
            logger.warning(
                "Cancelled shipment created after timeout",
                order_id=order_id,
                tracking_number=tracking_number,
                cancelled=response.get("cancelled"),
            )

        return callback

    def _notify_and_record(self, run: _Run, order) -> None:
        contact = None
        try:
            contact = self.domain.repository_for(Customer).get(order.customer_id).email
        except ObjectNotFoundError:
            logger.warning("Customer disappeared before notification", customer_id=str(order.customer_id))
        except Exception:
            logger.exception("Could not load customer contact", customer_id=str(order.customer_id))

        payload = {
            "customer_id": str(order.customer_id),
            "total": format_amount(order.total_cents),
            "item_count": len(order.items),
            "tracking_number": run.tracking_number,
            "carrier": run.carrier,
        }

        submitted = time.perf_counter()
        side_effects = []
        if contact is not None:
            side_effects.append(
                (
                    FulfillmentStage.NOTIFY,
                    FulfillmentError.NOTIFICATION_FAILURE,
                    self.settings.notification_timeout_seconds,
                    self._side_effect_executor.submit(self.notifier.notify, run.order_id, contact, run.tracking_number),
                )
            )
        else:
            self._side_effect_failed(
                run,
                FulfillmentStage.NOTIFY,
                FulfillmentError.NOTIFICATION_FAILURE,
                "No contact for order owner",
                submitted,
            )
        side_effects.append(
            (
                FulfillmentStage.ANALYTICS,
                FulfillmentError.ANALYTICS_FAILURE,
                self.settings.analytics_timeout_seconds,
                self._side_effect_executor.submit(self.analytics.record, run.order_id, payload),
            )
        )

        # Both calls run at once; each gets its own budget measured from submission
        for stage, error, timeout, future in side_effects:
            remaining = max(0.0, timeout - (time.perf_counter() - submitted))
            try:
                result = future.result(timeout=remaining)
            except futures.TimeoutError:
                future.cancel()
                self._side_effect_failed(run, stage, error, f"Timed out after {timeout:g}s", submitted)
                continue
            except Exception as exc:
                logger.exception("Side effect failed", stage=stage.value)
                self._side_effect_failed(run, stage, error, str(exc), submitted)
                continue

            reason = _side_effect_error(stage, result)
            if reason:
                self._side_effect_failed(run, stage, error, reason, submitted)
            else:
                self._emit_transition(run, stage, run.status, run.status, submitted, True)

    def _side_effect_failed(self, run, stage, error, reason, started) -> None:
        logger.warning("Non-critical fulfillment step failed", stage=stage.value, reason=reason)
        run.warnings.append({"error": error.value, "stage": stage.value, "reason": reason})
        self._emit_transition(run, stage, run.status, run.status, started, False, reason)

    def _complete(self, run: _Run) -> FulfillmentOutcome:
        self._begin(run, FulfillmentStage.COMPLETE, cancellable=False)
        started = time.perf_counter()
        from_status = run.status
        try:
            self._transition(run, lambda o: o.complete())
        except Exception as exc:
            # The goods are already on their way; the order stays Shipped
            logger.exception("Could not mark shipped order completed")
            self._observe(
                "alert",
                "completion_not_recorded",
                AlertSeverity.CRITICAL,
                "Shipped order could not be marked completed",
                order_id=run.order_id,
                tracking_number=run.tracking_number,
            )
            self._emit_transition(run, run.stage, from_status, from_status, started, False, str(exc))
            return FulfillmentOutcome(
                success=False,
                order_id=run.order_id,
                status=from_status,
                stage=run.stage.value,
                error=FulfillmentError.PERSISTENCE_FAILURE.value,
                reason=str(exc),
                tracking_number=run.tracking_number,
                warnings=run.warnings,
                stock_affected=True,
            )

        self._stage_succeeded(run, from_status, started)
        outcome = FulfillmentOutcome(
            success=True,
            order_id=run.order_id,
            status=run.status,
            stage=run.stage.value,
            tracking_number=run.tracking_number,
            warnings=run.warnings,
            stock_affected=True,
        )
        self._observe("metric", "fulfillment.completed", 1, {"degraded": outcome.degraded})
        if outcome.degraded:
            self._observe(
                "metric",
                "fulfillment.degraded",
                1,
                {"warnings": ",".join(w["error"] for w in run.warnings)},
            )
        self._observe("metric", "fulfillment.duration_ms", _elapsed_ms(run.started), {"outcome": "completed"})
        logger.info("Fulfillment completed", tracking_number=run.tracking_number, degraded=outcome.degraded)
        return outcome

    # -------------------------------------------------------------------
    # Failure and compensation
    # -------------------------------------------------------------------
    def _fail(self, run: _Run, failure: StageFailure) -> FulfillmentOutcome:
        started = time.perf_counter()
        logger.warning(
            "Fulfillment failed",
            stage=failure.stage.value,
            error=failure.error.value,
            reason=failure.reason,
        )

        if run.reservation_ids:
            run.compensation_failures.extend(
                self.inventory.release_all(run.reservation_ids, reason=f"{failure.stage.value}: {failure.reason}")
            )
        if run.shipment_id:
            self._discard_shipment_record(run)
        if run.tracking_number:
            self._cancel_shipment(run)
        if run.compensation_failures:
            logger.error("Compensation failed, stock not restored", reservation_ids=run.compensation_failures)
            self._observe(
                "alert",
                "compensation_failed",
                AlertSeverity.CRITICAL,
                "Reserved stock could not be returned after a failed fulfillment",
                order_id=run.order_id,
                stage=failure.stage.value,
                reservation_ids=run.compensation_failures,
            )

        from_status = run.status
        try:
            self._transition(run, lambda o: o.fail(failure.stage.value, failure.reason))
        except Exception:
            logger.exception("Could not record failed order state")
            self._observe(
                "alert",
                "failure_not_recorded",
                AlertSeverity.CRITICAL,
                "Order failure could not be persisted",
                order_id=run.order_id,
                stage=failure.stage.value,
            )

        self._emit_transition(run, failure.stage, from_status, run.status, started, False, failure.reason)
        self._observe(
            "metric",
            "fulfillment.failed",
            1,
            {"stage": failure.stage.value, "error": failure.error.value},
        )
        self._observe("metric", "fulfillment.duration_ms", _elapsed_ms(run.started), {"outcome": "failed"})

        return FulfillmentOutcome(
            success=False,
            order_id=run.order_id,
            status=run.status,
            stage=failure.stage.value,
            error=failure.error.value,
            reason=failure.reason,
            stock_affected=bool(run.compensation_failures),
            compensation_failed=bool(run.compensation_failures),
        )

    def _discard_shipment_record(self, run: _Run) -> None:
        repo = self.domain.repository_for(Shipment)
        try:
            repo._dao.delete(repo.get(run.shipment_id))
        except Exception:
            logger.exception("Could not remove shipment record of failed order", shipment_id=run.shipment_id)
            self._observe(
                "alert",
                "orphaned_shipment_record",
                AlertSeverity.HIGH,
                "Shipment record exists for a failed order",
                order_id=run.order_id,
                shipment_id=run.shipment_id,
            )

    def _cancel_shipment(self, run: _Run) -> None:
        try:
            self.carrier.cancel_shipment(run.tracking_number)
        except Exception:
            logger.exception("Could not cancel shipment of failed order", tracking_number=run.tracking_number)
            self._observe(
                "alert",
                "orphaned_shipment",
                AlertSeverity.HIGH,
                "Carrier shipment exists for a failed order",
                order_id=run.order_id,
                tracking_number=run.tracking_number,
            )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _begin(self, run: _Run, stage: FulfillmentStage, cancellable: bool = True) -> None:
        run.stage = stage
        if cancellable and run.cancellation.is_cancelled:
            raise StageFailure(stage, FulfillmentError.CANCELLED, run.cancellation.reason)

    def _transition(self, run: _Run, mutate):
        repo = self.domain.repository_for(Order)
        order = repo.get(run.order_id)
        mutate(order)
        repo.add(order)
        run.status = order.status
        return order

    def _stage_succeeded(self, run: _Run, from_status: str, started: float) -> None:
        self._emit_transition(run, run.stage, from_status, run.status, started, True)

    def _emit_transition(self, run, stage, from_status, to_status, started, succeeded, reason=None) -> None:
        duration_ms = _elapsed_ms(started)
        self._observe(
            "stage_transition",
            StageTransition(
                order_id=run.order_id,
                stage=stage.value,
                from_status=from_status,
                to_status=to_status,
                duration_ms=duration_ms,
                succeeded=succeeded,
                reason=reason,
            ),
        )
        self._observe(
            "metric",
            "fulfillment.stage.duration_ms",
            duration_ms,
            {"stage": stage.value, "succeeded": succeeded},
        )

    def _observe(self, method: str, *args, **kwargs) -> None:
        try:
            getattr(self.observer, method)(*args, **kwargs)
        except Exception:
            logger.exception("Observer call failed", observer_method=method)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def _parse_datetime(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _side_effect_error(stage: FulfillmentStage, result: dict | None) -> str | None:
    result = result or {}
    if stage == FulfillmentStage.NOTIFY and result.get("status") != "sent":
        return result.get("error") or "Notification was not sent"
    if stage == FulfillmentStage.ANALYTICS and not result.get("recorded"):
        return result.get("error") or "Analytics event was not recorded"
    return None
