"""Order placement: command and handler.

Checkout hands over the priced line items; the handler checks the farm is
taking orders, snapshots the items, applies the farm's delivery fee and
minimum order value, and stores the order in PROCESSING.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Date, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.access.farm import Farm
from ordering.domain import ordering
from ordering.notification.templates.formatting import format_pence
from ordering.order.order import Order, PaymentStatus, generate_order_number

_ORDER_NUMBER_ATTEMPTS = 5


@ordering.command(part_of="Order")
class PlaceOrder:
    farm_id = Identifier(required=True)
    customer_user_id = Identifier(required=True)
    customer_email = String(max_length=254)
    items = Text(required=True)  # JSON: list of {product_id, name, price, unit, weight, quantity}
    delivery_address = Text(required=True)
    delivery_address_json = Text()  # JSON: structured address
    delivery_notes = Text()
    requested_delivery_date = Date()
    payment_status = String(max_length=20, default=PaymentStatus.PENDING.value)


def _unique_order_number(repo) -> str:
    for _ in range(_ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number()
        if not repo._dao.query.filter(order_number=candidate).all().items:
            return candidate
    raise ValidationError({"order_number": ["Could not allocate a unique order number"]})


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        try:
            farm = current_domain.repository_for(Farm).get(command.farm_id)
        except ObjectNotFoundError:
            farm = None
        if farm is None or not farm.is_approved:
            raise ValidationError({"farm_id": ["Farm not found or not available for orders"]})

        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        repo = current_domain.repository_for(Order)

        order = Order.place(
            order_number=_unique_order_number(repo),
            farm_id=farm.id,
            customer_user_id=command.customer_user_id,
            items_data=items_data,
            delivery_fee=farm.delivery_fee or 0,
            customer_email=command.customer_email,
            delivery_address=command.delivery_address,
            delivery_address_json=command.delivery_address_json,
            delivery_notes=command.delivery_notes,
            requested_delivery_date=command.requested_delivery_date,
            payment_status=command.payment_status or PaymentStatus.PENDING.value,
        )

        min_order_value = farm.min_order_value or 0
        if order.subtotal < min_order_value:
            raise ValidationError(
                {
                    "subtotal": [
                        f"Minimum order value is {format_pence(min_order_value)}. "
                        f"Your subtotal is {format_pence(order.subtotal)}"
                    ]
                }
            )

        repo.add(order)
        return str(order.id)
