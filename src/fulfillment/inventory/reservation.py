"""InventoryReservation aggregate — stock provisionally held for one order.

Reservations transition through: ACTIVE → COMMITTED (order shipped), or
ACTIVE → RELEASED (fulfillment failed or was cancelled). The expiry is
advisory; reclaiming expired holds is a separate background job.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from fulfillment.domain import fulfillment
from fulfillment.inventory.events import ReservationCommitted, ReservationReleased, StockReserved

DEFAULT_RESERVATION_TTL = timedelta(minutes=30)


class ReservationStatus(Enum):
    ACTIVE = "Active"
    COMMITTED = "Committed"
    RELEASED = "Released"


@fulfillment.aggregate
class InventoryReservation:
    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    status = String(
        max_length=20,
        choices=ReservationStatus,
        default=ReservationStatus.ACTIVE.value,
    )
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)
    committed_at = DateTime()
    released_at = DateTime()
    release_reason = String(max_length=500)

    @classmethod
    def hold(cls, product_id: str, order_id: str, quantity: int, ttl: timedelta = DEFAULT_RESERVATION_TTL):
        now = datetime.now(UTC)
        reservation = cls(
            product_id=product_id,
            order_id=order_id,
            quantity=quantity,
            status=ReservationStatus.ACTIVE.value,
            reserved_at=now,
            expires_at=now + ttl,
        )
        reservation.raise_(
            StockReserved(
                reservation_id=str(reservation.id),
                product_id=str(product_id),
                order_id=str(order_id),
                quantity=quantity,
                reserved_at=now,
                expires_at=reservation.expires_at,
            )
        )
        return reservation

    def is_active(self) -> bool:
        return ReservationStatus(self.status) == ReservationStatus.ACTIVE

    def is_expired(self, at: datetime | None = None) -> bool:
        return (at or datetime.now(UTC)) >= self.expires_at

    def release(self, reason: str) -> None:
        if not self.is_active():
            raise ValidationError({"reservation_id": [f"Cannot release reservation in {self.status} state"]})

        now = datetime.now(UTC)
        self.status = ReservationStatus.RELEASED.value
        self.released_at = now
        self.release_reason = reason[:500]
        self.raise_(
            ReservationReleased(
                reservation_id=str(self.id),
                product_id=str(self.product_id),
                order_id=str(self.order_id),
                quantity=self.quantity,
                reason=self.release_reason,
                released_at=now,
            )
        )

    def commit(self) -> None:
        if not self.is_active():
            raise ValidationError({"reservation_id": [f"Cannot commit reservation in {self.status} state"]})

        now = datetime.now(UTC)
        self.status = ReservationStatus.COMMITTED.value
        self.committed_at = now
        self.raise_(
            ReservationCommitted(
                reservation_id=str(self.id),
                product_id=str(self.product_id),
                order_id=str(self.order_id),
                quantity=self.quantity,
                committed_at=now,
            )
        )
