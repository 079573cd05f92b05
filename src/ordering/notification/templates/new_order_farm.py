"""New order alert: sent to the farm that received the order."""

from html import escape

from ordering.notification.outbox import TemplateName
from ordering.notification.templates.formatting import format_pence, item_lines_text, wrap_html


class NewOrderFarmTemplate:
    template_name = TemplateName.NEW_ORDER_FARM.value
    recipient = "farm"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        farm_name = context.get("farm_name", "")
        customer_name = context.get("customer_name")
        items = context.get("items", [])
        delivery_notes = context.get("delivery_notes")
        portal_url = f"{context.get('app_url', '')}/farm-portal/orders"

        from_customer = f" from {customer_name}" if customer_name else ""
        item_list = "".join(
            f"<li>{escape(item['name'])} x {item['quantity']} - {format_pence(item['price'])}</li>" for item in items
        )
        notes_html = f"<h3>Delivery Notes:</h3><p>{escape(delivery_notes)}</p>" if delivery_notes else ""

        html = wrap_html(
            "New Order",
            f"<h1>New Order Received!</h1><p>Order {escape(order_number)}</p>"
            f"<p>Hi {escape(farm_name)} team,</p>"
            f"<p>You've received a new order{escape(from_customer)}.</p>"
            f"<h3>Order Items:</h3><ul>{item_list}</ul>"
            f"<p><strong>Total: {format_pence(context.get('total'))}</strong></p>"
            f"<h3>Delivery Address:</h3><p>{escape(context.get('delivery_address') or '')}</p>"
            f"{notes_html}"
            f"<p><a href=\"{portal_url}\">View Order in Farm Portal</a></p>",
        )
        text = (
            f"New Order {order_number}\n\n"
            f"Hi {farm_name} team,\n\n"
            f"You've received a new order{from_customer}.\n\n"
            f"Items:\n{item_lines_text(items)}\n\n"
            f"Total: {format_pence(context.get('total'))}\n\n"
            f"Delivery Address:\n{context.get('delivery_address') or ''}\n"
            + (f"\nDelivery Notes:\n{delivery_notes}\n" if delivery_notes else "")
            + f"\nView the order: {portal_url}\n"
        )
        return {
            "subject": f"New Order {order_number} - Action Required",
            "html": html,
            "text": text,
        }
