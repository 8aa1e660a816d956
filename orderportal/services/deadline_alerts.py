"""
Deadline alert sweep: warn owners and admins about orders that are due soon
and still not received.
"""
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from orderportal.core.config import settings
from orderportal.core.logging import get_logger
from orderportal.services.messages import build_admin_alert_message, build_owner_alert_message
from orderportal.services.notifications import NotificationDispatcher, get_dispatcher
from orderportal.services.order_queries import (
    OrderSnapshot,
    get_active_recipients,
    get_int_setting,
    load_orders_due_between,
)

logger = get_logger(__name__)

THRESHOLD_SETTING = "alert_days_threshold"


def group_by_owner(orders: List[OrderSnapshot]) -> "OrderedDict[str, List[OrderSnapshot]]":
    """Group orders by owner email, dropping orders whose owner has none."""
    grouped: "OrderedDict[str, List[OrderSnapshot]]" = OrderedDict()
    for order in orders:
        if not order.owner_email:
            continue
        grouped.setdefault(order.owner_email, []).append(order)
    return grouped


def send_due_date_alerts(
    db: Session,
    dispatcher: Optional[NotificationDispatcher] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Send owner alerts and the admin summary for at-risk orders.

    An order is at risk when it is not received and its required date falls
    within [today, today + threshold] inclusive. Each failed send is counted
    and the sweep carries on; reading settings or orders may raise.
    """
    dispatcher = dispatcher or get_dispatcher()
    if now is None:
        now = datetime.combine(today, time.min) if today else datetime.utcnow()
    if today is None:
        today = now.date()

    threshold = get_int_setting(db, THRESHOLD_SETTING, settings.DEFAULT_ALERT_DAYS_THRESHOLD)
    orders = load_orders_due_between(db, today, today + timedelta(days=threshold))

    result = {"orders": len(orders), "owner_alerts_sent": 0, "admin_alerts_sent": 0, "failed": 0}

    if not orders:
        logger.info(f"No orders due within {threshold} days", extra={"job": "due_date_alerts"})
        return result

    logger.info(f"Found {len(orders)} order(s) due within {threshold} days", extra={"job": "due_date_alerts"})

    for email, owner_orders in group_by_owner(orders).items():
        subject, body = build_owner_alert_message(owner_orders, threshold, now)
        if dispatcher.notify(email, subject, body).success:
            result["owner_alerts_sent"] += 1
        else:
            result["failed"] += 1

    recipients = get_active_recipients(db)
    if recipients:
        subject, body = build_admin_alert_message(orders, threshold, now)
        for recipient in recipients:
            if dispatcher.notify(recipient, subject, body).success:
                result["admin_alerts_sent"] += 1
            else:
                result["failed"] += 1

    logger.info(
        f"Due date alerts complete: owners={result['owner_alerts_sent']}, "
        f"admins={result['admin_alerts_sent']}, failed={result['failed']}",
        extra={"job": "due_date_alerts"},
    )
    return result
