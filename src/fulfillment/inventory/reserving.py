"""Stock reservation — commands and handler.

Each command runs inside the handler's unit of work, so the reservation record
and the product's stock level are written together or not at all.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.inventory.reservation import DEFAULT_RESERVATION_TTL, InventoryReservation, ReservationStatus
from fulfillment.product.product import Product

logger = structlog.get_logger(__name__)


@fulfillment.command(part_of="InventoryReservation")
class ReserveStock:
    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    expires_at = DateTime()  # Optional; defaults to 30 minutes from now


@fulfillment.command(part_of="InventoryReservation")
class ReleaseReservation:
    reservation_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@fulfillment.command(part_of="InventoryReservation")
class CommitReservation:
    reservation_id = Identifier(required=True)


@fulfillment.command_handler(part_of=InventoryReservation)
class ReservationHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        product_repo = current_domain.repository_for(Product)
        product = product_repo.get(command.product_id)

        ttl = DEFAULT_RESERVATION_TTL
        if command.expires_at is not None:
            ttl = command.expires_at - datetime.now(UTC)

        product.take_stock(command.quantity, order_id=command.order_id)
        reservation = InventoryReservation.hold(
            product_id=command.product_id,
            order_id=command.order_id,
            quantity=command.quantity,
            ttl=ttl,
        )

        product_repo.add(product)
        current_domain.repository_for(InventoryReservation).add(reservation)
        return str(reservation.id)

    @handle(ReleaseReservation)
    def release_reservation(self, command):
        repo = current_domain.repository_for(InventoryReservation)
        try:
            reservation = repo.get(command.reservation_id)
        except ObjectNotFoundError:
            logger.info("Release of unknown reservation ignored", reservation_id=str(command.reservation_id))
            return None

        if not reservation.is_active():
            logger.info(
                "Release of inactive reservation ignored",
                reservation_id=str(reservation.id),
                status=reservation.status,
            )
            return None

        product_repo = current_domain.repository_for(Product)
        product = product_repo.get(reservation.product_id)

        reservation.release(command.reason)
        product.return_stock(reservation.quantity, order_id=reservation.order_id)

        product_repo.add(product)
        repo.add(reservation)
        return str(reservation.id)

    @handle(CommitReservation)
    def commit_reservation(self, command):
        repo = current_domain.repository_for(InventoryReservation)
        try:
            reservation = repo.get(command.reservation_id)
        except ObjectNotFoundError:
            raise ValidationError({"reservation_id": ["Reservation not found"]})

        if ReservationStatus(reservation.status) == ReservationStatus.COMMITTED:
            return str(reservation.id)

        reservation.commit()
        repo.add(reservation)
        return str(reservation.id)
