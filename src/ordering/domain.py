"""Ordering bounded context: Farmlink order lifecycle.

Tracks an order from placement to delivery: the status state machine,
the append-only audit trail, the actor-authorization rules that decide
who may move an order, and the email notifications fired on placement
and on terminal transitions.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
ordering = Domain(name="ordering")
