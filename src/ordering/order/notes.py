"""Internal notes: admin-only remarks attached to an order.

Notes are visible to admins only and, like the audit trail, are never
edited or removed.
"""

from datetime import UTC, datetime

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order

MAX_NOTE_LENGTH = 2000


@ordering.aggregate
class InternalNote:
    order_id: Identifier(required=True)
    author_user_id: Identifier(required=True)
    note: String(required=True, max_length=MAX_NOTE_LENGTH)
    created_at: DateTime(default=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "author_user_id": str(self.author_user_id),
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@ordering.repository(part_of=InternalNote)
class InternalNoteRepository:
    def for_order(self, order_id: str) -> list[InternalNote]:
        notes = self._dao.query.filter(order_id=order_id).all().items
        return sorted(notes, key=lambda note: note.created_at)


@ordering.command(part_of="InternalNote")
class AddInternalNote:
    order_id = Identifier(required=True)
    author_user_id = Identifier(required=True)
    note = String(required=True, max_length=MAX_NOTE_LENGTH)


@ordering.command_handler(part_of=InternalNote)
class AddInternalNoteHandler:
    @handle(AddInternalNote)
    def add_note(self, command):
        # Raises ObjectNotFoundError for an unknown order
        current_domain.repository_for(Order).get(command.order_id)

        note = InternalNote(
            order_id=command.order_id,
            author_user_id=command.author_user_id,
            note=command.note.strip(),
            created_at=datetime.now(UTC),
        )
        current_domain.repository_for(InternalNote).add(note)
        return str(note.id)
