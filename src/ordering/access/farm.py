"""Farm aggregate: the seller an order belongs to.

A farm has exactly one owning user. Only approved farms take new orders.

Lifecycle:
    PENDING → APPROVED → SUSPENDED → APPROVED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering


class FarmStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"


_VALID_TRANSITIONS = {
    FarmStatus.PENDING: {FarmStatus.APPROVED},
    FarmStatus.APPROVED: {FarmStatus.SUSPENDED},
    FarmStatus.SUSPENDED: {FarmStatus.APPROVED},
}


@ordering.aggregate
class Farm:
    owner_user_id: Identifier(required=True)
    name: String(required=True, max_length=200)
    slug: String(max_length=200)
    status: String(choices=FarmStatus, default=FarmStatus.PENDING.value)
    contact_email: String(max_length=254)
    receive_order_emails: Boolean(default=True)

    # Delivery configuration, consulted when orders are placed
    delivery_days: Text()  # JSON: list of weekday names
    cutoff_time: String(max_length=5)  # HH:MM
    delivery_fee: Integer(default=0, min_value=0)
    min_order_value: Integer(default=0, min_value=0)

    created_at: DateTime(default=lambda: datetime.now(UTC))

    @property
    def is_approved(self) -> bool:
        return self.status == FarmStatus.APPROVED.value

    @property
    def delivery_day_list(self) -> list[str]:
        return json.loads(self.delivery_days) if self.delivery_days else []

    def _transition(self, target: FarmStatus) -> None:
        current = FarmStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot change farm status from {current.value} to {target.value}"]})
        self.status = target.value

    def approve(self) -> None:
        self._transition(FarmStatus.APPROVED)

    def suspend(self) -> None:
        self._transition(FarmStatus.SUSPENDED)

    def reinstate(self) -> None:
        if self.status != FarmStatus.SUSPENDED.value:
            raise ValidationError({"status": ["Only a suspended farm can be reinstated"]})
        self._transition(FarmStatus.APPROVED)

    def change_status(self, status: str) -> None:
        """Admin-driven status change by name."""
        try:
            target = FarmStatus(status)
        except ValueError:
            raise ValidationError({"status": [f"Invalid farm status: {status}"]}) from None
        self._transition(target)


@ordering.repository(part_of=Farm)
class FarmRepository:
    def find_by_owner(self, owner_user_id: str) -> Farm | None:
        """The farm owned by a user, if any."""
        farms = self._dao.query.filter(owner_user_id=owner_user_id).all().items
        return farms[0] if farms else None


@ordering.command(part_of="Farm")
class ChangeFarmStatus:
    farm_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@ordering.command_handler(part_of=Farm)
class ChangeFarmStatusHandler:
    @handle(ChangeFarmStatus)
    def change_farm_status(self, command):
        repo = current_domain.repository_for(Farm)
        farm = repo.get(command.farm_id)
        farm.change_status(command.status)
        repo.add(farm)
        return farm.status
