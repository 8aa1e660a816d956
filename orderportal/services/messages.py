"""
Email bodies for status changes and deadline alerts.
"""
import math
from datetime import date, datetime, time
from html import escape
from typing import List, Optional, Tuple

from orderportal.services.inventory import InventoryRecord
from orderportal.services.order_queries import OrderSnapshot

URGENT_DAYS = 2
URGENT_COLOR = "#e74c3c"
WARNING_COLOR = "#f39c12"

_STATUS_PHRASES = {
    "processing": "is being processed",
    "shipped": "has been shipped",
    "received": "has been received",
}


def days_until_due(date_required: date, now: datetime) -> int:
    """Whole days left until the required date (midnight), rounded up."""
    due = datetime.combine(date_required, time.min)
    return math.ceil((due - now).total_seconds() / 86400)


def _fmt_date(value: date) -> str:
    return value.strftime("%m/%d/%Y")


def build_status_change_message(
    order: OrderSnapshot,
    new_status: str,
    record: Optional[InventoryRecord] = None,
) -> Tuple[str, str]:
    """Subject and HTML body for an owner's status-change email."""
    po = escape(order.po_number)
    subject = f"Order Update: PO #{order.po_number}"

    details_html = ""
    details = record.details() if record else {}
    if details:
        items = "".join(
            f"<li><strong>{escape(label)}:</strong> {escape(value)}</li>"
            for label, value in details.items()
        )
        details_html = f"<h3>Additional Details:</h3><ul>{items}</ul>"

    phrase = _STATUS_PHRASES.get(new_status, "status has been updated")
    body = f"""
    <h2>Order Status Update</h2>
    <p>Your order <strong>{po}</strong> {phrase}.</p>
    <h3>Order Details:</h3>
    <ul>
      <li><strong>PO Number:</strong> {po}</li>
      <li><strong>Client Name:</strong> {escape(order.client_name or 'N/A')}</li>
      <li><strong>New Status:</strong> {escape(new_status.upper())}</li>
      <li><strong>Date Required:</strong> {_fmt_date(order.date_required)}</li>
    </ul>
    {details_html}
    <p>You can view your order details by logging into the portal.</p>
    """
    return subject, body


def build_owner_alert_message(orders: List[OrderSnapshot], threshold_days: int, now: datetime) -> Tuple[str, str]:
    """Subject and HTML body listing one owner's at-risk orders."""
    subject = f"Order Delivery Alert - {len(orders)} Order(s) Not Received"

    rows = []
    for order in orders:
        days = days_until_due(order.date_required, now)
        color = URGENT_COLOR if days <= URGENT_DAYS else WARNING_COLOR
        plural = "" if days == 1 else "s"
        rows.append(f"""
      <li>
        <strong>PO #{escape(order.po_number)}</strong><br>
        Status: {escape(order.status.upper())}<br>
        Due Date: {_fmt_date(order.date_required)}
        <span style="color: {color};">({days} day{plural} remaining)</span><br>
        Client: {escape(order.client_name or 'N/A')}
      </li>""")

    body = f"""
    <h2>Order Delivery Alert</h2>
    <p>The following order(s) have not been received and are due within {threshold_days} days:</p>
    <ul style="line-height: 2;">{''.join(rows)}
    </ul>
    <p>Please check on the status of these orders to ensure timely delivery.</p>
    <p>You can view more details by logging into the portal.</p>
    """
    return subject, body


def build_admin_alert_message(orders: List[OrderSnapshot], threshold_days: int, now: datetime) -> Tuple[str, str]:
    """Subject and HTML body for the consolidated admin summary."""
    subject = f"Admin Alert: {len(orders)} Order(s) Not Received"

    rows = []
    for order in orders:
        days = days_until_due(order.date_required, now)
        color = URGENT_COLOR if days <= URGENT_DAYS else WARNING_COLOR
        rows.append(f"""
      <li>
        <strong>PO #{escape(order.po_number)}</strong> - {escape(order.owner_company or 'Unknown Company')}<br>
        Status: {escape(order.status.upper())}<br>
        Due: {_fmt_date(order.date_required)} <span style="color: {color};">({days} days)</span><br>
        Client Email: {escape(order.owner_email or 'N/A')}
      </li>""")

    body = f"""
    <h2>Admin: Order Delivery Alert Summary</h2>
    <p>{len(orders)} order(s) have not been received and are due within {threshold_days} days:</p>
    <ul style="line-height: 2.5;">{''.join(rows)}
    </ul>
    <p>Clients have been notified automatically.</p>
    """
    return subject, body
