"""Customer registration — command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from fulfillment.customer.customer import Customer
from fulfillment.domain import fulfillment


@fulfillment.command(part_of="Customer")
class RegisterCustomer:
    name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)


@fulfillment.command_handler(part_of=Customer)
class RegisterCustomerHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        repo = current_domain.repository_for(Customer)
        email = command.email.strip().lower()
        if "@" not in email:
            raise ValidationError({"email": ["Email address is not valid"]})
        if repo._dao.query.filter(email=email).all().items:
            raise ValidationError({"email": ["A customer with this email is already registered"]})

        customer = Customer.register(name=command.name, email=email)
        repo.add(customer)
        return str(customer.id)
