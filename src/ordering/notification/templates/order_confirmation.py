"""Order confirmation: sent to the customer when an order is placed."""

from html import escape

from ordering.notification.outbox import TemplateName
from ordering.notification.templates.formatting import (
    format_pence,
    greeting,
    item_lines_text,
    item_rows_html,
    wrap_html,
)


class OrderConfirmationTemplate:
    template_name = TemplateName.ORDER_CONFIRMATION.value
    recipient = "customer"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        farm_name = context.get("farm_name", "the farm")
        items = context.get("items", [])
        orders_url = f"{context.get('app_url', '')}/orders"

        html = wrap_html(
            "Order Confirmation",
            f"<h2>Order Confirmed!</h2>"
            f"<p>{escape(greeting(context.get('customer_name')))}</p>"
            f"<p>Thank you for your order. It is being prepared by <strong>{escape(farm_name)}</strong>.</p>"
            f"<p><strong>Order Number: {escape(order_number)}</strong></p>"
            f"<table>{item_rows_html(items)}</table>"
            f"<p>Subtotal: {format_pence(context.get('subtotal'))}<br>"
            f"Delivery: {format_pence(context.get('delivery_fee'))}<br>"
            f"<strong>Total: {format_pence(context.get('total'))}</strong></p>"
            f"<h4>Delivery Address</h4><p>{escape(context.get('delivery_address') or '')}</p>"
            f"<p>Track your order on your <a href=\"{orders_url}\">orders page</a>.</p>",
        )
        text = (
            f"Order Confirmed! - {order_number}\n\n"
            f"{greeting(context.get('customer_name'))}\n\n"
            f"Thank you for your order from {farm_name}.\n\n"
            f"Items:\n{item_lines_text(items)}\n\n"
            f"Subtotal: {format_pence(context.get('subtotal'))}\n"
            f"Delivery: {format_pence(context.get('delivery_fee'))}\n"
            f"Total: {format_pence(context.get('total'))}\n\n"
            f"Delivery Address:\n{context.get('delivery_address') or ''}\n\n"
            f"Track your order: {orders_url}\n"
        )
        return {
            "subject": f"Order Confirmed - {order_number}",
            "html": html,
            "text": text,
        }
