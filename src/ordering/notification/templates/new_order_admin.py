"""New order alert for the operations mailbox."""

from html import escape

from ordering.notification.outbox import TemplateName
from ordering.notification.templates.formatting import format_pence, wrap_html


class NewOrderAdminTemplate:
    template_name = TemplateName.NEW_ORDER_ADMIN.value
    recipient = "admin"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        rows = [
            ("Order Number", order_number),
            ("Farm", context.get("farm_name", "")),
            ("Customer", context.get("customer_email") or ""),
            ("Total", format_pence(context.get("total"))),
        ]
        table = "".join(f"<tr><td><strong>{label}:</strong></td><td>{escape(str(value))}</td></tr>" for label, value in rows)
        admin_url = f"{context.get('app_url', '')}/admin/orders"

        return {
            "subject": f"[Farmlink] New Order {order_number}",
            "html": wrap_html(
                "New Order - Admin Notification",
                f"<h1>New Order Alert</h1><table>{table}</table>"
                f"<p><a href=\"{admin_url}\">View in Admin Dashboard</a></p>",
            ),
            "text": "\n".join(f"{label}: {value}" for label, value in rows) + f"\n\n{admin_url}\n",
        }
