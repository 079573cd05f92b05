"""Order lifecycle orchestration.

A status change runs in a fixed sequence:

    1. authorization gate (actor may act on this order)
    2. transition validation (move is legal from the current status)
    3. status write (skipped for same-status annotations)
    4. audit event append
    5. notifications

Steps 1-3 are the primary operation; any failure there propagates and
nothing after it runs. Steps 4 and 5 are secondary: their failures are
logged and reported on the returned outcome, never raised.

There is no version check between the read in step 1 and the write in
step 3, so two actors changing the same order at once can overwrite each
other (last write wins).
"""

import json
from dataclasses import dataclass, field

from protean.utils.globals import current_domain

from ordering.access.authorization import Actor, AuthorizationGate
from ordering.audit.logger import AuditLog
from ordering.notification.dispatcher import NotificationDispatcher
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder
from ordering.order.status_change import ChangeOrderStatus
from ordering.order.transitions import (
    ActorRole,
    OrderStatus,
    TransitionRejected,
    validate_transition,
)
from ordering.settings import Settings, get_settings
from ordering.utils.logging import add_context, clear_context, get_logger

logger = get_logger(__name__)

PLACEMENT_NOTE = "Order placed"


@dataclass(frozen=True)
class SecondaryFailure:
    step: str  # "audit" or "notification"
    error: str


@dataclass
class TransitionOutcome:
    """Result of a lifecycle operation whose primary write succeeded."""

    order_id: str
    previous_status: str | None
    status: str
    status_written: bool
    event_id: str | None = None
    primary_succeeded: bool = True
    secondary_failures: list[SecondaryFailure] = field(default_factory=list)

    @property
    def fully_succeeded(self) -> bool:
        return self.primary_succeeded and not self.secondary_failures


class OrderLifecycle:
    def __init__(
        self,
        settings: Settings | None = None,
        gate: AuthorizationGate | None = None,
        audit: AuditLog | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.settings = settings or get_settings()
        self.gate = gate or AuthorizationGate()
        self.audit = audit or AuditLog()
        self.dispatcher = dispatcher or NotificationDispatcher(self.settings)

    def change_status(self, actor: Actor, order_id: str, requested_status, note: str | None = None) -> TransitionOutcome:
        """Move an order to ``requested_status`` on behalf of ``actor``.

        Raises:
            AccessDenied: the actor may not act on this order.
            TransitionRejected: the move is not legal from the current status.
        """
        add_context(order_id=str(order_id), actor_role=actor.role.value)
        try:
            order = self.gate.check(actor, order_id)
            previous = order.status

            decision = validate_transition(previous, requested_status, actor.role, note)
            if not decision.allowed:
                logger.info("Status change rejected", reason=decision.reason.value, requested=str(requested_status))
                raise TransitionRejected(decision)

            new_status = OrderStatus(requested_status)
            if not decision.is_annotation:
                current_domain.process(
                    ChangeOrderStatus(order_id=order.id, status=new_status.value, actor_role=actor.role.value),
                    asynchronous=False,
                )
                logger.info("Order status changed", status_from=previous, status_to=new_status.value)

            outcome = TransitionOutcome(
                order_id=str(order.id),
                previous_status=previous,
                status=new_status.value,
                status_written=not decision.is_annotation,
            )
            self._record(outcome, actor.user_id, actor.role, note)
            if outcome.status_written:
                self._notify(outcome, order, previous, new_status, note)
            return outcome
        finally:
            clear_context("order_id", "actor_role")

    def place_order(
        self,
        customer_user_id: str,
        farm_id: str,
        items: list[dict],
        delivery_address: str,
        customer_email: str | None = None,
        delivery_address_json: dict | None = None,
        delivery_notes: str | None = None,
        requested_delivery_date=None,
    ) -> TransitionOutcome:
        """Create an order in PROCESSING, then record and announce it."""
        order_id = current_domain.process(
            PlaceOrder(
                farm_id=farm_id,
                customer_user_id=customer_user_id,
                customer_email=customer_email,
                items=json.dumps(items),
                delivery_address=delivery_address,
                delivery_address_json=json.dumps(delivery_address_json) if delivery_address_json else None,
                delivery_notes=delivery_notes,
                requested_delivery_date=requested_delivery_date,
            ),
            asynchronous=False,
        )
        logger.info("Order placed", order_id=order_id, farm_id=str(farm_id))

        outcome = TransitionOutcome(
            order_id=order_id,
            previous_status=None,
            status=OrderStatus.PROCESSING.value,
            status_written=True,
        )
        self._record(outcome, customer_user_id, ActorRole.CUSTOMER, PLACEMENT_NOTE)

        try:
            order = current_domain.repository_for(Order).get(order_id)
        except Exception as exc:
            logger.exception("Placed order could not be reloaded for notification", order_id=order_id)
            outcome.secondary_failures.append(SecondaryFailure(step="notification", error=str(exc)))
            return outcome

        self._notify(outcome, order, None, OrderStatus.PROCESSING, None)
        return outcome

    def _record(self, outcome: TransitionOutcome, actor_user_id, actor_role: ActorRole, note) -> None:
        try:
            outcome.event_id = self.audit.append(
                order_id=outcome.order_id,
                status_from=outcome.previous_status,
                status_to=outcome.status,
                actor_user_id=actor_user_id,
                actor_role=actor_role,
                note=note,
            )
        except Exception as exc:
            logger.exception("Audit event append failed", order_id=outcome.order_id)
            outcome.secondary_failures.append(SecondaryFailure(step="audit", error=str(exc)))

    def _notify(self, outcome: TransitionOutcome, order, previous, new_status, note) -> None:
        try:
            failures = self.dispatcher.notify(order, previous, new_status, note=note)
        except Exception as exc:
            logger.exception("Notification dispatch failed", order_id=outcome.order_id)
            outcome.secondary_failures.append(SecondaryFailure(step="notification", error=str(exc)))
            return

        for failure in failures:
            outcome.secondary_failures.append(
                SecondaryFailure(step="notification", error=f"{failure.template_name}: {failure.error}")
            )
