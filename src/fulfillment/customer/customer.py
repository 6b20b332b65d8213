"""Customer aggregate — the owner of orders and the contact for notifications."""

from datetime import UTC, datetime

from protean.fields import DateTime, String

from fulfillment.domain import fulfillment


@fulfillment.aggregate
class Customer:
    name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)
    registered_at = DateTime()

    @classmethod
    def register(cls, name: str, email: str):
        return cls(name=name, email=email.strip().lower(), registered_at=datetime.now(UTC))
