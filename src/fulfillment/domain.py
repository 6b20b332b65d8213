"""Fulfillment bounded context — Orders, Inventory Reservations and Shipping.

Owns the order fulfillment pipeline: an order moves from Pending through
validation, stock reservation, payment confirmation and carrier handoff to
Completed, or stops in a terminal Failed state with its reservations released.
Products, customers, payments and shipments live here because the pipeline
reads and writes all of them within a single run.
"""

from protean.domain import Domain

fulfillment = Domain(name="fulfillment")
