"""OrderEvent aggregate: the append-only audit trail of an order.

One record per status change or annotation: who acted, in which role,
from which status to which, and an optional note. Records are never
updated or deleted.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from ordering.domain import ordering
from ordering.order.transitions import ActorRole, OrderStatus


@ordering.aggregate
class OrderEvent:
    order_id: Identifier(required=True)
    status_from: String(choices=OrderStatus)  # None on creation
    status_to: String(choices=OrderStatus, required=True)
    actor_user_id: Identifier()
    actor_role: String(choices=ActorRole, required=True)
    note: Text()
    created_at: DateTime(default=lambda: datetime.now(UTC))

    @classmethod
    def record(cls, order_id, status_from, status_to, actor_user_id, actor_role, note=None):
        return cls(
            order_id=order_id,
            status_from=status_from,
            status_to=status_to,
            actor_user_id=actor_user_id,
            actor_role=actor_role,
            note=note,
            created_at=datetime.now(UTC),
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "status_from": self.status_from,
            "status_to": self.status_to,
            "note": self.note,
            "actor_role": self.actor_role,
            "actor_user_id": str(self.actor_user_id) if self.actor_user_id else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@ordering.repository(part_of=OrderEvent)
class OrderEventRepository:
    def add(self, item, **kwargs):
        if self._dao.query.filter(id=item.id).all().items:
            raise ValidationError({"order_event": ["Audit events are append-only"]})
        return super().add(item, **kwargs)

    def for_order(self, order_id: str) -> list[OrderEvent]:
        """Audit trail of an order, oldest first."""
        events = self._dao.query.filter(order_id=order_id).all().items
        return sorted(events, key=lambda event: event.created_at)
