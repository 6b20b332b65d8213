"""Inventory store — reserve, release and commit stock holds.

All stock mutations in the fulfillment pipeline go through this store.
Reservations on the same product serialize on a per-product lock, so the
check-and-decrement is atomic with respect to other reservers and stock can
never go negative. ``reserve_all`` extends that to a whole order: every line
is reserved or none is.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from fulfillment.inventory.reservation import DEFAULT_RESERVATION_TTL, InventoryReservation
from fulfillment.inventory.reserving import CommitReservation, ReleaseReservation, ReserveStock
from fulfillment.product.product import Product
from fulfillment.utils.locks import KeyedLocks

logger = structlog.get_logger(__name__)


class ReservationError(Exception):
    """Base class for reservation failures."""


class InsufficientStock(ReservationError):
    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {self.product_id}: {available} available, {requested} requested"
        )


class UnknownProduct(ReservationError):
    def __init__(self, product_id: str):
        self.product_id = str(product_id)
        super().__init__(f"Product {self.product_id} not found")


class ReservationFailed(ReservationError):
    """An all-or-nothing reservation for an order could not be completed.

    ``compensation_failures`` lists reservation ids that could not be
    released while undoing the partial reservation; when it is non-empty the
    stock for those holds is still decremented and needs operator attention.
    """

    def __init__(self, order_id: str, cause: Exception, compensation_failures: list[str] | None = None):
        self.order_id = str(order_id)
        self.cause = cause
        self.compensation_failures = compensation_failures or []
        super().__init__(str(cause))


class InventoryStore:
    def __init__(self, domain, reservation_ttl: timedelta = DEFAULT_RESERVATION_TTL):
        self.domain = domain
        self.reservation_ttl = reservation_ttl
        self._product_locks = KeyedLocks()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def available(self, product_id: str) -> int:
        try:
            product = self.domain.repository_for(Product).get(product_id)
        except ObjectNotFoundError:
            raise UnknownProduct(product_id)
        return product.stock_quantity or 0

    def reservations_for(self, order_id: str) -> list:
        repo = self.domain.repository_for(InventoryReservation)
        return repo._dao.query.filter(order_id=str(order_id)).all().items

    def _find(self, reservation_id: str):
        try:
            return self.domain.repository_for(InventoryReservation).get(reservation_id)
        except ObjectNotFoundError:
            return None

    # -------------------------------------------------------------------
    # Single-product operations
    # -------------------------------------------------------------------
    def reserve(self, product_id: str, order_id: str, quantity: int) -> str:
        """Hold ``quantity`` units of a product for an order; returns the reservation id."""
        with self._product_locks.hold([product_id]):
            return self._reserve_locked(product_id, order_id, quantity)

    def _reserve_locked(self, product_id: str, order_id: str, quantity: int) -> str:
        try:
            reservation_id = self.domain.process(
                ReserveStock(
                    product_id=str(product_id),
                    order_id=str(order_id),
                    quantity=quantity,
                    expires_at=datetime.now(UTC) + self.reservation_ttl,
                ),
                asynchronous=False,
            )
        except ObjectNotFoundError:
            raise UnknownProduct(product_id)
        except ValidationError as exc:
            if "quantity" in exc.messages:
                raise InsufficientStock(product_id, quantity, self.available(product_id)) from exc
            raise

        logger.info(
            "Reserved stock",
            reservation_id=reservation_id,
            product_id=str(product_id),
            order_id=str(order_id),
            quantity=quantity,
        )
        return reservation_id

    def release(self, reservation_id: str, reason: str = "released") -> None:
        """Give a hold back to available stock. Unknown or inactive holds are a no-op."""
        reservation = self._find(reservation_id)
        if reservation is None:
            logger.debug("Release skipped, reservation not found", reservation_id=str(reservation_id))
            return

        with self._product_locks.hold([reservation.product_id]):
            self.domain.process(
                ReleaseReservation(reservation_id=str(reservation_id), reason=reason),
                asynchronous=False,
            )

    def commit(self, reservation_id: str) -> None:
        """Turn a hold into a permanent decrement. Already committed holds are a no-op."""
        reservation = self._find(reservation_id)
        if reservation is None:
            raise ValidationError({"reservation_id": ["Reservation not found"]})

        with self._product_locks.hold([reservation.product_id]):
            self.domain.process(CommitReservation(reservation_id=str(reservation_id)), asynchronous=False)

    # -------------------------------------------------------------------
    # Whole-order operations
    # -------------------------------------------------------------------
    def reserve_all(self, order_id: str, lines: list[tuple[str, int]]) -> list[str]:
        """Reserve every ``(product_id, quantity)`` line for an order, or none of them.

        All involved products stay locked for the whole set, so no other
        reserver observes a partially reserved order. If any line fails,
        the holds made so far in this call are released before
        ``ReservationFailed`` is raised.
        """
        made: list[str] = []
        with self._product_locks.hold(product_id for product_id, _ in lines):
            try:
                for product_id, quantity in lines:
                    made.append(self._reserve_locked(product_id, order_id, quantity))
            except Exception as exc:
                failures = self._undo(made, order_id, reason=f"partial reservation rolled back: {exc}")
                logger.warning(
                    "Order reservation rolled back",
                    order_id=str(order_id),
                    rolled_back=len(made) - len(failures),
                    compensation_failures=failures,
                    error=str(exc),
                )
                raise ReservationFailed(order_id, exc, failures) from exc
        return made

    def _undo(self, reservation_ids: list[str], order_id: str, reason: str) -> list[str]:
        # Product locks are already held by the caller
        failures = []
        for reservation_id in reversed(reservation_ids):
            try:
                self.domain.process(
                    ReleaseReservation(reservation_id=reservation_id, reason=reason[:500]),
                    asynchronous=False,
                )
            except Exception:
                logger.exception("Failed to release reservation", reservation_id=reservation_id, order_id=str(order_id))
                failures.append(reservation_id)
        return failures

    def release_all(self, reservation_ids: list[str], reason: str) -> list[str]:
        """Release several holds; returns the ids that could not be released."""
        failures = []
        for reservation_id in reversed(reservation_ids):
            try:
                self.release(reservation_id, reason=reason[:500])
            except Exception:
                logger.exception("Failed to release reservation", reservation_id=reservation_id)
                failures.append(reservation_id)
        return failures

    def commit_all(self, reservation_ids: list[str]) -> list[str]:
        """Commit several holds; returns the ids that could not be committed."""
        failures = []
        for reservation_id in reservation_ids:
            try:
                self.commit(reservation_id)
            except Exception:
                logger.exception("Failed to commit reservation", reservation_id=reservation_id)
                failures.append(reservation_id)
        return failures
