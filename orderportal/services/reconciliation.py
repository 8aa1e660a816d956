"""
Order status reconciliation.

Handles:
- Loading tracked orders (optionally scoped to one client company)
- Resolving each order against the inventory system
- Persisting transitions together with their history row
- Notifying the owner once the transition is committed

Orders are processed one at a time and independently: a lookup outage or a
failed write on one order is logged and the pass moves on. Only a failure to
load the order list aborts the pass.
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from orderportal.core.logging import get_logger
from orderportal.db.models import TrackedOrder, StatusHistoryEntry
from orderportal.services.inventory import InventoryClient, InventoryLookupError, get_inventory_client
from orderportal.services.messages import build_status_change_message
from orderportal.services.notifications import NotificationDispatcher, get_dispatcher
from orderportal.services.order_queries import OrderSnapshot, load_tracked_orders
from orderportal.services.status_resolver import Resolution, resolve_order_status

logger = get_logger(__name__)

# Per-order outcomes, also the summary counter names
CHANGED = "changed"
UNCHANGED = "unchanged"
NOT_FOUND = "not_found"
FAILED = "failed"


async def check_order_statuses(
    db: Session,
    client_filter: Optional[str] = None,
    client: Optional[InventoryClient] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    Run one reconciliation pass.

    Every order is re-examined, including received ones, since the
    inventory system can report a received item as re-shipped.

    Args:
        db: Database session
        client_filter: Restrict to orders whose owner's company_name matches
        client: Inventory client (defaults to the process-wide one)
        dispatcher: Notification dispatcher (defaults to the process-wide one)

    Returns:
        Summary counts for the pass

    Raises:
        Any storage error raised while loading the order list
    """
    client = client or get_inventory_client()
    dispatcher = dispatcher or get_dispatcher()

    orders = load_tracked_orders(db, client_filter)

    summary = {
        "client_filter": client_filter,
        "checked": len(orders),
        CHANGED: 0,
        UNCHANGED: 0,
        NOT_FOUND: 0,
        FAILED: 0,
        "notifications_sent": 0,
        "notifications_failed": 0,
    }

    scope = f" for client \"{client_filter}\"" if client_filter else ""
    logger.info(f"Checking {len(orders)} orders against inventory API{scope}", extra={"job": "status_check"})

    for order in orders:
        try:
            outcome, notified = await reconcile_order(db, order, client, dispatcher)
        except Exception as e:
            logger.error(
                f"Unexpected error reconciling PO {order.po_number}: {e}",
                exc_info=True,
                extra={"order_id": order.id, "po_number": order.po_number},
            )
            _safe_rollback(db)
            summary[FAILED] += 1
            continue

        summary[outcome] += 1
        if notified is True:
            summary["notifications_sent"] += 1
        elif notified is False:
            summary["notifications_failed"] += 1

    logger.info(
        f"Status check complete: changed={summary[CHANGED]}, unchanged={summary[UNCHANGED]}, "
        f"not_found={summary[NOT_FOUND]}, failed={summary[FAILED]}",
        extra={"job": "status_check"},
    )
    return summary


async def reconcile_order(
    db: Session,
    order: OrderSnapshot,
    client: InventoryClient,
    dispatcher: NotificationDispatcher,
):
    """
    Reconcile a single order.

    Returns:
        (outcome, notified) where notified is None when no email was due,
        otherwise whether the send succeeded
    """
    log_extra = {"order_id": order.id, "po_number": order.po_number}

    try:
        resolution = await resolve_order_status(client, order.po_number, order.client_name)
    except InventoryLookupError as e:
        logger.warning(f"Could not check order {order.po_number} - inventory API error: {e}", extra=log_extra)
        return FAILED, None

    now = datetime.utcnow()

    if not resolution.found:
        logger.info(f"Order {order.po_number} not found in inventory yet", extra=log_extra)
        _touch_last_checked(db, order.id, now)
        return NOT_FOUND, None

    new_status = resolution.status.value
    if new_status == order.status:
        _touch_last_checked(db, order.id, now)
        return UNCHANGED, None

    if not _apply_transition(db, order, new_status, now):
        # Another pass committed this transition first
        _touch_last_checked(db, order.id, now)
        return UNCHANGED, None

    logger.info(f"Order {order.po_number} status changed: {order.status} -> {new_status}", extra=log_extra)

    if not order.owner_email:
        return CHANGED, None
    return CHANGED, await _notify_status_change(dispatcher, order, new_status, resolution)


def _apply_transition(db: Session, order: OrderSnapshot, new_status: str, now: datetime) -> bool:
    """
    Update the order and append its history row in one transaction.

    The update only applies while the stored status is still the one we
    read, so re-entrant passes never log the same transition twice.
    """
    try:
        updated = db.query(TrackedOrder).filter(
            TrackedOrder.id == order.id,
            TrackedOrder.status == order.status,
        ).update(
            {
                TrackedOrder.status: new_status,
                TrackedOrder.last_checked_at: now,
                TrackedOrder.last_status_change_at: now,
                TrackedOrder.updated_at: now,
            },
            synchronize_session=False,
        )
        if updated != 1:
            db.rollback()
            return False

        db.add(StatusHistoryEntry(
            order_id=order.id,
            old_status=order.status,
            new_status=new_status,
            changed_at=now,
        ))
        db.commit()
        return True
    except Exception:
        db.rollback()
        raise


def _touch_last_checked(db: Session, order_id: int, now: datetime) -> None:
    try:
        db.query(TrackedOrder).filter(TrackedOrder.id == order_id).update(
            {TrackedOrder.last_checked_at: now},
            synchronize_session=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise


async def _notify_status_change(
    dispatcher: NotificationDispatcher,
    order: OrderSnapshot,
    new_status: str,
    resolution: Resolution,
) -> bool:
    """Best-effort email after commit; never undoes the transition."""
    try:
        subject, body = build_status_change_message(order, new_status, resolution.record)
        result = await asyncio.to_thread(dispatcher.notify, order.owner_email, subject, body)
    except Exception as e:
        logger.error(f"Status email for PO {order.po_number} failed: {e}", exc_info=True)
        return False

    if not result.success:
        logger.warning(
            f"Status email for PO {order.po_number} not delivered: {result.error}",
            extra={"order_id": order.id, "po_number": order.po_number},
        )
    return result.success


def _safe_rollback(db: Session) -> None:
    try:
        db.rollback()
    except Exception as e:
        logger.error(f"Rollback failed: {e}")
