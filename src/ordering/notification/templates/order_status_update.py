"""Order status update: sent to the customer when an order reaches a terminal status."""

from html import escape

from ordering.notification.outbox import TemplateName
from ordering.notification.templates.formatting import greeting, wrap_html
from ordering.order.transitions import OrderStatus, humanize_status

_HEADLINES = {
    OrderStatus.DELIVERED.value: "Your order has been delivered. We hope you enjoy it!",
    OrderStatus.CANCELLED.value: "Your order has been cancelled. If you have been charged, a refund will follow.",
}


class OrderStatusUpdateTemplate:
    template_name = TemplateName.ORDER_STATUS_UPDATE.value
    recipient = "customer"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        status = context.get("status", "")
        headline = _HEADLINES.get(status, f"Your order is now {humanize_status(status)}.")
        note = context.get("note")
        orders_url = f"{context.get('app_url', '')}/orders"

        note_html = f"<p><em>{escape(note)}</em></p>" if note else ""
        html = wrap_html(
            "Order Update",
            f"<p>{escape(greeting(context.get('customer_name')))}</p>"
            f"<p>{escape(headline)}</p>"
            f"<p><strong>Order Number: {escape(order_number)}</strong></p>"
            f"{note_html}"
            f"<p><a href=\"{orders_url}\">View your orders</a></p>",
        )
        text = (
            f"{greeting(context.get('customer_name'))}\n\n"
            f"{headline}\n\n"
            f"Order Number: {order_number}\n"
            + (f"\n{note}\n" if note else "")
            + f"\nView your orders: {orders_url}\n"
        )
        return {
            "subject": f"Order {order_number} {humanize_status(status)}",
            "html": html,
            "text": text,
        }
