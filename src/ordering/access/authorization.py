"""Authorization gate: binds an actor to an order before any transition check.

Admin and system actors may act on any order. A farm actor may act only on
orders of the farm they own. Customers have no standing here at all.

Denials carry a reason the HTTP layer maps to a status code: NOT_FOUND
(404) or FORBIDDEN (403). In farm scope, a missing order and another
farm's order are both NOT_FOUND so the response does not confirm that an
order id exists.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.access.farm import Farm
from ordering.order.order import Order
from ordering.order.transitions import ActorRole


class DenialReason(Enum):
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"


@dataclass(frozen=True)
class Actor:
    """An authenticated identity with its resolved role."""

    user_id: str
    role: ActorRole


@dataclass(frozen=True)
class Authorization:
    permitted: bool
    reason: DenialReason | None = None
    message: str | None = None


class AccessDenied(Exception):
    def __init__(self, reason: DenialReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


_PERMITTED = Authorization(permitted=True)


def _deny(reason: DenialReason, message: str) -> Authorization:
    return Authorization(permitted=False, reason=reason, message=message)


def authorize(actor: Actor, order: Order | None, owned_farm: Farm | None = None) -> Authorization:
    """Decide whether ``actor`` may change the status of ``order``.

    ``order`` is None when no order exists under the requested id, and
    ``owned_farm`` is the farm owned by a farm actor, if any.
    """
    if actor.role in (ActorRole.ADMIN, ActorRole.SYSTEM):
        if order is None:
            return _deny(DenialReason.NOT_FOUND, "Order not found")
        return _PERMITTED

    if actor.role == ActorRole.FARM:
        if owned_farm is None:
            return _deny(DenialReason.FORBIDDEN, "You don't have a farm associated with your account")
        if order is None or str(order.farm_id) != str(owned_farm.id):
            return _deny(DenialReason.NOT_FOUND, "Order not found or doesn't belong to your farm")
        return _PERMITTED

    return _deny(DenialReason.FORBIDDEN, "You are not allowed to change order status")


class AuthorizationGate:
    """Loads the order and the actor's farm, then applies ``authorize``."""

    def check(self, actor: Actor, order_id: str) -> Order:
        """Return the order when permitted; raise AccessDenied otherwise."""
        if actor.role not in (ActorRole.ADMIN, ActorRole.SYSTEM, ActorRole.FARM):
            decision = authorize(actor, None)
            raise AccessDenied(decision.reason, decision.message)

        owned_farm = None
        if actor.role == ActorRole.FARM:
            owned_farm = current_domain.repository_for(Farm).find_by_owner(actor.user_id)

        try:
            order = current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            order = None

        decision = authorize(actor, order, owned_farm)
        if not decision.permitted:
            raise AccessDenied(decision.reason, decision.message)
        return order
