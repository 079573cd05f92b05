"""Order status change: command and handler.

The handler performs the authoritative status write only. Authorization,
the audit entry and notifications are the caller's concern (see
``ordering.order.lifecycle``). The transition is re-validated against the
freshly loaded order so a stale read cannot move a terminal order.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.transitions import OrderStatus, TransitionRejected, validate_transition


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    actor_role = String(required=True, max_length=20)


@ordering.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status

        decision = validate_transition(previous, command.status, command.actor_role)
        if not decision.allowed:
            raise TransitionRejected(decision)

        order.transition_to(OrderStatus(command.status))
        repo.add(order)
        return previous
