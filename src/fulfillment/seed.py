"""Sample data for local runs and the ``demo`` command.

Three customers, eight products and three pending orders:

- alice's order is paid in full and fulfills cleanly
- bob's order has no payment and fails at the payment stage
- charlie's payment was taken for 94.98 against an order worth 94.97,
  so it fails with a payment mismatch
"""

import json

from fulfillment.customer.registration import RegisterCustomer
from fulfillment.money import to_cents
from fulfillment.order.placement import PlaceOrder
from fulfillment.payment.recording import RecordPayment
from fulfillment.product.registration import RegisterProduct

CUSTOMERS = [
    ("Alice Johnson", "alice@example.com"),
    ("Bob Smith", "bob@example.com"),
    ("Charlie Davis", "charlie@example.com"),
]

PRODUCTS = [
    ("Wireless Headphones", "Premium noise-cancelling wireless headphones", "199.99", 50),
    ("Laptop Stand", "Adjustable aluminum laptop stand", "49.99", 100),
    ("Mechanical Keyboard", "RGB mechanical gaming keyboard", "129.99", 30),
    ("USB-C Hub", "7-in-1 USB-C hub with HDMI and SD card reader", "39.99", 75),
    ("Webcam", "1080p HD webcam with auto-focus", "79.99", 40),
    ("Desk Lamp", "LED desk lamp with adjustable brightness", "34.99", 60),
    ("Mouse Pad", "Extra large gaming mouse pad", "19.99", 200),
    ("Phone Stand", "Adjustable phone and tablet stand", "14.99", 150),
]


def seed_demo_data(domain) -> dict:
    """Register the sample records; returns their ids keyed by name."""
    customers = {}
    for name, email in CUSTOMERS:
        customers[email.split("@")[0]] = domain.process(RegisterCustomer(name=name, email=email), asynchronous=False)

    products = {}
    for name, description, price, stock in PRODUCTS:
        products[name] = domain.process(
            RegisterProduct(
                name=name,
                description=description,
                price_cents=to_cents(price),
                stock_quantity=stock,
            ),
            asynchronous=False,
        )

    def place(customer, lines):
        items = [{"product_id": products[name], "quantity": quantity} for name, quantity in lines]
        return domain.process(
            PlaceOrder(customer_id=customers[customer], items=json.dumps(items)),
            asynchronous=False,
        )

    def pay(order_id, amount):
        domain.process(
            RecordPayment(
                order_id=order_id,
                amount_cents=to_cents(amount),
                status="Completed",
                method="credit_card",
                metadata=json.dumps({"card_last4": "4242"}),
            ),
            asynchronous=False,
        )

    orders = {
        "alice": place("alice", [("Wireless Headphones", 1), ("Laptop Stand", 1)]),
        "bob": place("bob", [("Mechanical Keyboard", 1)]),
        "charlie": place("charlie", [("USB-C Hub", 1), ("Desk Lamp", 1), ("Mouse Pad", 1)]),
    }
    pay(orders["alice"], "249.98")
    pay(orders["charlie"], "94.98")

    return {"customers": customers, "products": products, "orders": orders}
