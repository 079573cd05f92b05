"""Shared rendering helpers for email templates."""

from html import escape


def format_pence(amount) -> str:
    """Render integer pence as pounds, e.g. ``1250`` → ``£12.50``."""
    return f"£{(amount or 0) / 100:.2f}"


def greeting(name: str | None) -> str:
    return f"Hi {name}," if name else "Hi,"


def item_lines_text(items: list[dict]) -> str:
    return "\n".join(f"- {item['name']} x{item['quantity']}: {format_pence(item['price'])}" for item in items)


def item_rows_html(items: list[dict]) -> str:
    return "".join(
        "<tr>"
        f"<td>{escape(item['name'])}</td>"
        f"<td style=\"text-align: center;\">{item['quantity']}</td>"
        f"<td style=\"text-align: right;\">{format_pence(item['price'])}</td>"
        "</tr>"
        for item in items
    )


def wrap_html(title: str, content: str) -> str:
    return (
        "<!DOCTYPE html>"
        f"<html><head><meta charset=\"utf-8\"><title>{escape(title)}</title></head>"
        "<body style=\"font-family: sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;\">"
        f"{content}"
        "<p style=\"color: #666; font-size: 12px;\">Farmlink - Premium Meat from Local Farms</p>"
        "</body></html>"
    )
