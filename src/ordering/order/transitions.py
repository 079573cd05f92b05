"""Order status state machine.

Statuses and actor roles are closed enumerations and transition legality
is a lookup table, so every caller asks ``validate_transition`` instead of
comparing status strings.

Canonical forward path:
    PROCESSING → CONFIRMED → PREPARING → READY_FOR_PICKUP →
    OUT_FOR_DELIVERY → DELIVERED

CANCELLED and EXCEPTION are reachable from any non-terminal status.
DELIVERED and CANCELLED are terminal. Only admin and system actors may
move an order out of EXCEPTION.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError


class OrderStatus(Enum):
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    EXCEPTION = "exception"


class ActorRole(Enum):
    CUSTOMER = "customer"
    FARM = "farm"
    ADMIN = "admin"
    SYSTEM = "system"


class RejectionReason(Enum):
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    NO_CHANGE = "NO_CHANGE"
    TERMINAL_STATE = "TERMINAL_STATE"
    REGRESSION = "REGRESSION"
    EXCEPTION_HOLD = "EXCEPTION_HOLD"


FORWARD_PATH = (
    OrderStatus.PROCESSING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

_ALWAYS_REACHABLE = frozenset({OrderStatus.CANCELLED, OrderStatus.EXCEPTION})

# Roles that may drive status changes at all; customers only observe orders.
_MUTATING_ROLES = frozenset({ActorRole.FARM, ActorRole.ADMIN, ActorRole.SYSTEM})

_PRIVILEGED_ROLES = frozenset({ActorRole.ADMIN, ActorRole.SYSTEM})


def _build_transitions() -> dict[OrderStatus, frozenset[OrderStatus]]:
    table = {}
    for index, status in enumerate(FORWARD_PATH):
        if status in TERMINAL_STATES:
            table[status] = frozenset()
        else:
            table[status] = frozenset(FORWARD_PATH[index + 1 :]) | _ALWAYS_REACHABLE
    table[OrderStatus.CANCELLED] = frozenset()
    table[OrderStatus.EXCEPTION] = frozenset()
    return table


# Legal targets for farm actors
_TRANSITIONS = _build_transitions()

# Admin and system actors additionally release orders held in EXCEPTION
_PRIVILEGED_TRANSITIONS = {
    **_TRANSITIONS,
    OrderStatus.EXCEPTION: frozenset(set(OrderStatus) - {OrderStatus.EXCEPTION}),
}


@dataclass(frozen=True)
class TransitionDecision:
    """Outcome of ``validate_transition``.

    An allowed same-status request carrying a note is an annotation: the
    audit trail records it but the stored status is left untouched.
    """

    allowed: bool
    reason: RejectionReason | None = None
    message: str | None = None
    is_annotation: bool = False

    @classmethod
    def allow(cls, is_annotation: bool = False) -> "TransitionDecision":
        return cls(allowed=True, is_annotation=is_annotation)

    @classmethod
    def reject(cls, reason: RejectionReason, message: str) -> "TransitionDecision":
        return cls(allowed=False, reason=reason, message=message)


class TransitionRejected(ValidationError):
    """A status change refused by the state machine."""

    def __init__(self, decision: TransitionDecision):
        super().__init__({"status": [decision.message]})
        self.decision = decision
        self.reason = decision.reason
        self.message = decision.message


def parse_status(value) -> OrderStatus | None:
    """Return the OrderStatus for ``value``, or None when it names no status."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def parse_role(value) -> ActorRole | None:
    if isinstance(value, ActorRole):
        return value
    try:
        return ActorRole(value)
    except ValueError:
        return None


def humanize_status(status) -> str:
    """Render a status for people: ``out_for_delivery`` → ``out for delivery``."""
    value = status.value if isinstance(status, OrderStatus) else str(status)
    return value.replace("_", " ")


def default_note(status) -> str:
    return f"Status changed to {humanize_status(status)}"


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATES


def allowed_targets(current, actor_role) -> frozenset[OrderStatus]:
    """Statuses an actor may move an order to from ``current``."""
    current_status = parse_status(current)
    role = parse_role(actor_role)
    if current_status is None or role not in _MUTATING_ROLES:
        return frozenset()
    table = _PRIVILEGED_TRANSITIONS if role in _PRIVILEGED_ROLES else _TRANSITIONS
    return table[current_status]


def validate_transition(current, requested, actor_role, note: str | None = None) -> TransitionDecision:
    """Decide whether ``actor_role`` may move an order from ``current`` to ``requested``.

    Checks run in a fixed order: unknown target, role standing, same-status
    (annotation when a note is present), terminal current status, and finally
    the transition table, which rejects regressions along the forward path.
    """
    requested_status = parse_status(requested)
    if requested_status is None:
        return TransitionDecision.reject(RejectionReason.UNKNOWN_STATUS, f"Invalid status: {requested}")

    current_status = parse_status(current)
    if current_status is None:
        return TransitionDecision.reject(RejectionReason.UNKNOWN_STATUS, f"Order has an unknown status: {current}")

    role = parse_role(actor_role)
    if role not in _MUTATING_ROLES:
        return TransitionDecision.reject(
            RejectionReason.ROLE_NOT_PERMITTED,
            "Only farm and admin users can change order status",
        )

    if requested_status == current_status:
        if note and note.strip():
            return TransitionDecision.allow(is_annotation=True)
        return TransitionDecision.reject(RejectionReason.NO_CHANGE, "Order is already in this status")

    if current_status in TERMINAL_STATES:
        return TransitionDecision.reject(
            RejectionReason.TERMINAL_STATE,
            f"Order is {humanize_status(current_status)} and can no longer change status",
        )

    if requested_status in allowed_targets(current_status, role):
        return TransitionDecision.allow()

    if current_status == OrderStatus.EXCEPTION:
        return TransitionDecision.reject(
            RejectionReason.EXCEPTION_HOLD,
            "Only an admin can move an order out of exception",
        )

    return TransitionDecision.reject(
        RejectionReason.REGRESSION,
        f"Cannot move order back from {humanize_status(current_status)} to {humanize_status(requested_status)}",
    )
