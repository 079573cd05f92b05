"""Audit logger: appends OrderEvent records with actor attribution."""

from protean.utils.globals import current_domain

from ordering.audit.order_event import OrderEvent
from ordering.order.transitions import ActorRole, OrderStatus, default_note


def _value(member):
    return member.value if isinstance(member, (OrderStatus, ActorRole)) else member


class AuditLog:
    """Writes the order audit trail.

    ``append`` raises on store failure; callers that treat the audit write
    as best-effort catch and log it themselves.
    """

    def append(
        self,
        order_id: str,
        status_from,
        status_to,
        actor_user_id: str | None,
        actor_role,
        note: str | None = None,
    ) -> str:
        """Append one event and return its id. A blank note becomes ``default_note(status_to)``."""
        note = note.strip() if note else None
        event = OrderEvent.record(
            order_id=order_id,
            status_from=_value(status_from),
            status_to=_value(status_to),
            actor_user_id=actor_user_id,
            actor_role=_value(actor_role),
            note=note or default_note(status_to),
        )
        current_domain.repository_for(OrderEvent).add(event)
        return str(event.id)

    def history(self, order_id: str) -> list[OrderEvent]:
        return current_domain.repository_for(OrderEvent).for_order(order_id)
