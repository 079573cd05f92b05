"""Order aggregate with OrderItem entities.

An order is created in PROCESSING when checkout completes and afterwards
changes only through ``transition_to``. Line items are snapshots of the
product as it was sold, so historical orders stay accurate after the
catalogue changes. Money is held in integer minor units (pence).
"""

import random
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import OrderPlaced, OrderStatusChanged
from ordering.order.transitions import TERMINAL_STATES, OrderStatus, humanize_status


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


def generate_order_number(now: datetime | None = None) -> str:
    """Human-readable order number, e.g. ``FD-20250114-0421``."""
    now = now or datetime.now(UTC)
    return f"FD-{now:%Y%m%d}-{random.randint(0, 9999):04d}"


@ordering.entity(part_of="Order")
class OrderItem:
    """A product line frozen at the moment the order was placed."""

    product_id: Identifier()
    name_snapshot: String(required=True, max_length=255)
    price_snapshot: Integer(required=True, min_value=0)
    unit_snapshot: String(max_length=50)
    weight_snapshot: String(max_length=50)
    quantity: Integer(required=True, min_value=1)
    line_total: Integer(required=True, min_value=0)


@ordering.aggregate
class Order:
    """A customer's order from a single farm.

    Terminal orders (delivered, cancelled) never change status again;
    notes against them go to the audit trail only.
    """

    order_number: String(required=True, max_length=20, unique=True)
    farm_id: Identifier(required=True)
    customer_user_id: Identifier(required=True)
    customer_email: String(max_length=254)
    status: String(choices=OrderStatus, default=OrderStatus.PROCESSING.value)
    payment_status: String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)

    subtotal: Integer(required=True, min_value=0)
    delivery_fee: Integer(default=0, min_value=0)
    total: Integer(required=True, min_value=0)

    delivery_address: Text()
    delivery_address_json: Text()
    delivery_notes: Text()
    requested_delivery_date: Date()

    items: HasMany(OrderItem)

    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def total_is_subtotal_plus_delivery_fee(self):
        if self.total != (self.subtotal or 0) + (self.delivery_fee or 0):
            raise ValidationError({"total": ["Total must equal subtotal plus delivery fee"]})

    @invariant.post
    def subtotal_matches_line_totals(self):
        if not self.items:
            return
        if self.subtotal != sum(item.line_total for item in self.items):
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of line totals"]})

    @classmethod
    def place(
        cls,
        order_number,
        farm_id,
        customer_user_id,
        items_data,
        delivery_fee=0,
        customer_email=None,
        delivery_address=None,
        delivery_address_json=None,
        delivery_notes=None,
        requested_delivery_date=None,
        payment_status=PaymentStatus.PENDING.value,
    ):
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        items = []
        for data in items_data:
            price = int(data["price"])
            quantity = int(data["quantity"])
            items.append(
                OrderItem(
                    product_id=data.get("product_id"),
                    name_snapshot=data["name"],
                    price_snapshot=price,
                    unit_snapshot=data.get("unit"),
                    weight_snapshot=data.get("weight"),
                    quantity=quantity,
                    line_total=price * quantity,
                )
            )

        subtotal = sum(item.line_total for item in items)
        delivery_fee = delivery_fee or 0
        now = datetime.now(UTC)

        order = cls(
            order_number=order_number,
            farm_id=farm_id,
            customer_user_id=customer_user_id,
            customer_email=customer_email,
            status=OrderStatus.PROCESSING.value,
            payment_status=payment_status,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=subtotal + delivery_fee,
            delivery_address=delivery_address,
            delivery_address_json=delivery_address_json,
            delivery_notes=delivery_notes,
            requested_delivery_date=requested_delivery_date,
            items=items,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order_number,
                farm_id=farm_id,
                customer_user_id=customer_user_id,
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                total=order.total,
                placed_at=now,
            )
        )
        return order

    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATES

    def transition_to(self, new_status: OrderStatus) -> None:
        """Move the stored status. Legality is decided by ``validate_transition``;
        the aggregate itself only refuses to leave a terminal status."""
        if self.is_terminal:
            raise ValidationError(
                {"status": [f"Order is {humanize_status(self.status)} and can no longer change status"]}
            )
        if new_status == self.current_status:
            raise ValidationError({"status": ["Order is already in this status"]})

        previous = self.status
        now = datetime.now(UTC)
        self.status = new_status.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                status_from=previous,
                status_to=new_status.value,
                changed_at=now,
            )
        )
