"""Order deletion — removes an order and everything recorded against it.

Active reservations are released first so their stock goes back on the
shelf; then reservations, payments and shipments are deleted, and finally
the order itself.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.inventory.reservation import InventoryReservation
from fulfillment.order.order import Order, OrderStatus
from fulfillment.payment.payment import Payment
from fulfillment.product.product import Product
from fulfillment.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)

# Orders in these states are not in the middle of a fulfillment run
_DELETABLE = {OrderStatus.PENDING, OrderStatus.COMPLETED, OrderStatus.FAILED}


@fulfillment.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)


@fulfillment.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)

        if OrderStatus(order.status) not in _DELETABLE:
            raise ValidationError({"status": [f"Cannot delete an order while it is {order.status}"]})

        order_id = str(order.id)
        released = self._release_and_delete_reservations(order_id)

        payment_repo = current_domain.repository_for(Payment)
        payments = payment_repo._dao.query.filter(order_id=order_id).all().items
        for payment in payments:
            payment_repo._dao.delete(payment)

        shipment_repo = current_domain.repository_for(Shipment)
        shipments = shipment_repo._dao.query.filter(order_id=order_id).all().items
        for shipment in shipments:
            shipment_repo._dao.delete(shipment)

        order_repo._dao.delete(order)
        logger.info(
            "Order deleted",
            order_id=order_id,
            released_reservations=released,
            payments=len(payments),
            shipments=len(shipments),
        )
        return order_id

    def _release_and_delete_reservations(self, order_id: str) -> int:
        reservation_repo = current_domain.repository_for(InventoryReservation)
        product_repo = current_domain.repository_for(Product)

        released = 0
        for reservation in reservation_repo._dao.query.filter(order_id=order_id).all().items:
            if reservation.is_active():
                product = product_repo.get(reservation.product_id)
                product.return_stock(reservation.quantity, order_id=order_id)
                product_repo.add(product)
                released += 1
            reservation_repo._dao.delete(reservation)
        return released
