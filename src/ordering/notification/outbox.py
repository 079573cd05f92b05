"""EmailOutbox aggregate: durable record of every email the service tried to send.

State Machine:
    PENDING → SENT
    PENDING → FAILED → (retry) → SENT | FAILED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text

from ordering.domain import ordering


class OutboxStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class TemplateName(Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    NEW_ORDER_FARM = "new_order_farm"
    NEW_ORDER_ADMIN = "new_order_admin"
    ORDER_STATUS_UPDATE = "order_status_update"


_RETRYABLE = {OutboxStatus.PENDING, OutboxStatus.FAILED}


@ordering.aggregate
class EmailOutbox:
    to_email: String(required=True, max_length=254)
    from_email: String(required=True, max_length=254)
    subject: String(required=True, max_length=500)
    html_body: Text(required=True)
    text_body: Text()
    template_name: String(max_length=100)
    context_data: Text()  # JSON metadata, e.g. the order number

    status: String(choices=OutboxStatus, default=OutboxStatus.PENDING.value)
    error_message: Text()
    attempts: Integer(default=0, min_value=0)

    sent_at: DateTime()
    created_at: DateTime()

    @classmethod
    def queue(
        cls,
        to_email,
        from_email,
        subject,
        html_body,
        text_body=None,
        template_name=None,
        metadata=None,
        status=OutboxStatus.PENDING.value,
        error_message=None,
        attempts=0,
    ):
        return cls(
            to_email=to_email,
            from_email=from_email,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            template_name=template_name,
            context_data=json.dumps(metadata or {}),
            status=status,
            error_message=error_message,
            attempts=attempts,
            created_at=datetime.now(UTC),
        )

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.context_data) if self.context_data else {}

    @property
    def is_retryable(self) -> bool:
        return OutboxStatus(self.status) in _RETRYABLE

    def mark_sent(self) -> None:
        if not self.is_retryable:
            raise ValidationError({"status": ["Email has already been sent"]})
        self.status = OutboxStatus.SENT.value
        self.error_message = None
        self.attempts = (self.attempts or 0) + 1
        self.sent_at = datetime.now(UTC)

    def mark_failed(self, error_message: str) -> None:
        if not self.is_retryable:
            raise ValidationError({"status": ["Email has already been sent"]})
        self.status = OutboxStatus.FAILED.value
        self.error_message = error_message
        self.attempts = (self.attempts or 0) + 1

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "to_email": self.to_email,
            "subject": self.subject,
            "template_name": self.template_name,
            "status": self.status,
            "error_message": self.error_message,
            "attempts": self.attempts,
            "metadata": self.metadata_dict,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@ordering.repository(part_of=EmailOutbox)
class EmailOutboxRepository:
    def with_status(self, *statuses: str) -> list[EmailOutbox]:
        """Outbox records in any of ``statuses``, oldest first."""
        records = []
        for status in statuses:
            records.extend(self._dao.query.filter(status=status).all().items)
        return sorted(records, key=lambda record: record.created_at)

    def recent(self, status: str | None = None, limit: int = 100) -> list[EmailOutbox]:
        """Newest records first, optionally filtered by status."""
        query = self._dao.query.filter(status=status) if status else self._dao.query
        records = query.all().items
        return sorted(records, key=lambda record: record.created_at, reverse=True)[:limit]
