"""Template registry: maps template names to template classes.

Each template renders ``subject``, ``html`` and ``text`` from a context dict.
"""

from ordering.notification.outbox import TemplateName
from ordering.notification.templates.new_order_admin import NewOrderAdminTemplate
from ordering.notification.templates.new_order_farm import NewOrderFarmTemplate
from ordering.notification.templates.order_confirmation import OrderConfirmationTemplate
from ordering.notification.templates.order_status_update import OrderStatusUpdateTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    TemplateName.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
    TemplateName.NEW_ORDER_FARM.value: NewOrderFarmTemplate,
    TemplateName.NEW_ORDER_ADMIN.value: NewOrderAdminTemplate,
    TemplateName.ORDER_STATUS_UPDATE.value: OrderStatusUpdateTemplate,
}


def get_template(template_name: str):
    """Look up a template class by name."""
    template_cls = TEMPLATE_REGISTRY.get(template_name)
    if template_cls is None:
        raise ValueError(f"No template registered for: {template_name}")
    return template_cls
