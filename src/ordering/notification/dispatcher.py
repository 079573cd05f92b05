"""Notification dispatcher: order emails with a durable outbox fallback.

Which emails a change produces is a static table: placing an order emails
the customer, the farm and the operations mailbox; reaching a terminal
status emails the customer. Every email is first sent through the
configured provider. Without a provider it is queued in the outbox as
pending; when the provider fails it is queued as failed with the error.

Nothing here raises into the caller. Sends are not de-duplicated:
notifying the same change twice sends the emails twice.
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.access.farm import Farm
from ordering.access.profile import Profile
from ordering.notification.channel import get_email_channel
from ordering.notification.outbox import EmailOutbox, OutboxStatus, TemplateName
from ordering.notification.templates import get_template
from ordering.order.transitions import OrderStatus, parse_status
from ordering.settings import Settings, get_settings
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

_ON_PLACEMENT = (
    TemplateName.ORDER_CONFIRMATION,
    TemplateName.NEW_ORDER_FARM,
    TemplateName.NEW_ORDER_ADMIN,
)

_ON_STATUS = {
    OrderStatus.DELIVERED: (TemplateName.ORDER_STATUS_UPDATE,),
    OrderStatus.CANCELLED: (TemplateName.ORDER_STATUS_UPDATE,),
}


def templates_for(previous_status, new_status) -> tuple[TemplateName, ...]:
    """Templates fired by a change; ``previous_status`` is None for a new order."""
    if previous_status is None:
        return _ON_PLACEMENT
    return _ON_STATUS.get(parse_status(new_status), ())


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    queued: bool = False
    outbox_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class NotificationFailure:
    template_name: str
    recipient: str | None
    error: str


class EmailSender:
    """Sends a rendered template, falling back to the outbox."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def send(self, to: str, template_name: str, context: dict, metadata: dict | None = None) -> SendResult:
        rendered = get_template(template_name).render({**context, "app_url": self.settings.app_url})
        channel = get_email_channel()

        if channel is None:
            logger.info("No email provider configured, queueing email", to=to, template_name=template_name)
            return self._queue(to, template_name, rendered, metadata)

        try:
            result = channel.send(
                to=to,
                subject=rendered["subject"],
                html_body=rendered["html"],
                text_body=rendered.get("text"),
                from_email=self.settings.email_from,
            )
        except Exception as exc:
            result = {"status": "failed", "error": str(exc) or exc.__class__.__name__}

        if result.get("status") == "sent":
            return SendResult(success=True, message_id=result.get("message_id"))

        error = result.get("error") or "Unknown email provider error"
        logger.warning("Email provider failed, queueing email", to=to, template_name=template_name, error=error)
        return self._queue(to, template_name, rendered, metadata, error_message=error)

    def _queue(self, to, template_name, rendered, metadata, error_message=None) -> SendResult:
        record = EmailOutbox.queue(
            to_email=to,
            from_email=self.settings.email_from,
            subject=rendered["subject"],
            html_body=rendered["html"],
            text_body=rendered.get("text"),
            template_name=template_name,
            metadata=metadata,
            status=OutboxStatus.FAILED.value if error_message else OutboxStatus.PENDING.value,
            error_message=error_message,
            attempts=1 if error_message else 0,
        )
        try:
            current_domain.repository_for(EmailOutbox).add(record)
        except Exception as exc:
            logger.exception("Failed to queue email in outbox", to=to, template_name=template_name)
            return SendResult(success=False, error=f"Failed to queue: {exc}")

        return SendResult(
            success=error_message is None,
            queued=True,
            outbox_id=str(record.id),
            error=error_message,
        )


class NotificationDispatcher:
    def __init__(self, settings: Settings | None = None, sender: EmailSender | None = None):
        self.settings = settings or get_settings()
        self.sender = sender or EmailSender(self.settings)

    def notify(self, order, previous_status, new_status, note: str | None = None) -> list[NotificationFailure]:
        """Send the emails a change calls for. Returns the sends that did not go out."""
        failures = []
        for template in templates_for(previous_status, new_status):
            try:
                failure = self._notify_one(template, order, new_status, note)
            except Exception as exc:
                logger.exception(
                    "Notification failed",
                    order_id=str(order.id),
                    template_name=template.value,
                )
                failure = NotificationFailure(template.value, None, str(exc))
            if failure is not None:
                failures.append(failure)
        return failures

    def _notify_one(self, template: TemplateName, order, new_status, note) -> NotificationFailure | None:
        recipient_kind = get_template(template.value).recipient
        recipient = self._recipient(recipient_kind, order)
        if recipient is None:
            if recipient_kind == "customer":
                logger.warning("Order has no customer email", order_id=str(order.id))
                return NotificationFailure(template.value, None, "No customer email on order")
            logger.info("Notification skipped, no recipient", order_id=str(order.id), template_name=template.value)
            return None

        result = self.sender.send(
            to=recipient,
            template_name=template.value,
            context=self._context(order, new_status, note),
            metadata={"order_id": str(order.id), "order_number": order.order_number},
        )
        if result.error:
            return NotificationFailure(template.value, recipient, result.error)
        return None

    def _recipient(self, kind: str, order) -> str | None:
        if kind == "customer":
            if order.customer_email:
                return order.customer_email
            profile = _profile(order.customer_user_id)
            return profile.email if profile else None

        if kind == "farm":
            farm = current_domain.repository_for(Farm).get(order.farm_id)
            if not farm.receive_order_emails:
                return None
            if farm.contact_email:
                return farm.contact_email
            owner = _profile(farm.owner_user_id)
            return owner.email if owner else None

        return self.settings.admin_notification_email

    def _context(self, order, new_status, note) -> dict:
        try:
            farm_name = current_domain.repository_for(Farm).get(order.farm_id).name
        except ObjectNotFoundError:
            farm_name = ""
        customer = _profile(order.customer_user_id)

        status = parse_status(new_status)
        return {
            "order_number": order.order_number,
            "customer_name": customer.name if customer else None,
            "customer_email": order.customer_email,
            "farm_name": farm_name,
            "items": [
                {"name": item.name_snapshot, "quantity": item.quantity, "price": item.line_total}
                for item in order.items
            ],
            "subtotal": order.subtotal,
            "delivery_fee": order.delivery_fee,
            "total": order.total,
            "delivery_address": order.delivery_address,
            "delivery_notes": order.delivery_notes,
            "status": status.value if status else str(new_status),
            "note": note,
        }


def _profile(user_id) -> Profile | None:
    if not user_id:
        return None
    try:
        return current_domain.repository_for(Profile).get(user_id)
    except ObjectNotFoundError:
        return None


def flush_outbox(limit: int = 50, settings: Settings | None = None) -> dict:
    """Re-send pending and failed outbox records through the configured provider.

    Returns counts of records sent and failed. Nothing is attempted when no
    provider is configured.
    """
    settings = settings or get_settings()
    channel = get_email_channel()
    summary = {"sent": 0, "failed": 0, "attempted": 0}
    if channel is None:
        logger.warning("No email provider configured, outbox left untouched")
        return summary

    repo = current_domain.repository_for(EmailOutbox)
    records = repo.with_status(OutboxStatus.PENDING.value, OutboxStatus.FAILED.value)[:limit]
    for record in records:
        summary["attempted"] += 1
        try:
            result = channel.send(
                to=record.to_email,
                subject=record.subject,
                html_body=record.html_body,
                text_body=record.text_body,
                from_email=record.from_email or settings.email_from,
            )
        except Exception as exc:
            result = {"status": "failed", "error": str(exc) or exc.__class__.__name__}

        if result.get("status") == "sent":
            record.mark_sent()
            summary["sent"] += 1
        else:
            record.mark_failed(result.get("error") or "Unknown email provider error")
            summary["failed"] += 1
            logger.warning("Outbox retry failed", outbox_id=str(record.id), error=record.error_message)
        repo.add(record)

    return summary
