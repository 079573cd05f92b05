"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer completed checkout and the order entered processing."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    farm_id = Identifier(required=True)
    customer_user_id = Identifier(required=True)
    subtotal = Integer(required=True)
    delivery_fee = Integer(required=True)
    total = Integer(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The stored status of an order moved to a new value."""

    __version__ = 1

    order_id = Identifier(required=True)
    status_from = String(required=True)
    status_to = String(required=True)
    changed_at = DateTime(required=True)
