"""
Shared reads for the reconciliation and deadline-alert sweeps.
"""
import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from orderportal.core.logging import get_logger
from orderportal.db.models import TrackedOrder, User, EmailSetting, AlertRecipient, OrderStatus

logger = get_logger(__name__)


@dataclass
class OrderSnapshot:
    """
    Plain copy of an order row joined with its owner.

    Sweeps iterate snapshots rather than ORM instances so a rollback on one
    order never expires state needed for the next.
    """
    id: int
    po_number: str
    client_name: Optional[str]
    status: str
    date_required: date
    owner_email: Optional[str]
    owner_company: Optional[str]
    last_status_change_at: Optional[datetime] = None


def _snapshot(order: TrackedOrder, email: Optional[str], company: Optional[str]) -> OrderSnapshot:
    return OrderSnapshot(
        id=order.id,
        po_number=order.po_number,
        client_name=order.client_name,
        status=order.status,
        date_required=order.date_required,
        owner_email=email,
        owner_company=company,
        last_status_change_at=order.last_status_change_at,
    )


def load_tracked_orders(db: Session, client_filter: Optional[str] = None) -> List[OrderSnapshot]:
    """All tracked orders, optionally only those whose owner belongs to ``client_filter``."""
    query = db.query(TrackedOrder, User.email, User.company_name).outerjoin(
        User, TrackedOrder.user_id == User.id
    )
    if client_filter:
        query = query.filter(User.company_name == client_filter)

    rows = query.order_by(TrackedOrder.id).all()
    return [_snapshot(order, email, company) for order, email, company in rows]


def load_orders_due_between(db: Session, start: date, end: date) -> List[OrderSnapshot]:
    """Orders not yet received whose required date falls in [start, end]."""
    rows = db.query(TrackedOrder, User.email, User.company_name).outerjoin(
        User, TrackedOrder.user_id == User.id
    ).filter(
        TrackedOrder.status != OrderStatus.RECEIVED.value,
        TrackedOrder.date_required >= start,
        TrackedOrder.date_required <= end,
    ).order_by(TrackedOrder.date_required, TrackedOrder.id).all()
    return [_snapshot(order, email, company) for order, email, company in rows]


def get_active_recipients(db: Session) -> List[str]:
    rows = db.query(AlertRecipient.email).filter(
        AlertRecipient.is_active.is_(True)
    ).order_by(AlertRecipient.id).all()
    return [email for (email,) in rows]


def get_setting(db: Session, key: str) -> Optional[str]:
    row = db.query(EmailSetting).filter(EmailSetting.setting_key == key).first()
    return row.setting_value if row else None


def get_int_setting(db: Session, key: str, default: int, minimum: int = 0) -> int:
    """Integer setting; missing, unparseable or below ``minimum`` falls back to ``default``."""
    raw = get_setting(db, key)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Setting {key}={raw!r} is not an integer, using {default}")
        return default
    if value < minimum:
        logger.warning(f"Setting {key}={value} is below {minimum}, using {default}")
        return default
    return value


def get_list_setting(db: Session, key: str, default: List[str]) -> List[str]:
    """JSON list setting such as ``["09:00", "17:00"]``."""
    raw = get_setting(db, key)
    if not raw:
        return list(default)
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning(f"Setting {key}={raw!r} is not valid JSON, using {default}")
        return list(default)
    if not isinstance(value, list):
        return list(default)
    return [str(v) for v in value]
