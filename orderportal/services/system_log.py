"""
Persisted operational events (the admin panel's system log).
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from orderportal.core.logging import get_logger, scrub_value
from orderportal.db.models import SystemLog, LogType

logger = get_logger(__name__)


def log_event(
    db: Session,
    log_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    created_by: str = "system",
) -> Optional[SystemLog]:
    """
    Write a system log row and mirror it to the application log.

    Never raises: a failed write is logged and rolled back so the caller's
    job keeps its own outcome.
    """
    if isinstance(log_type, LogType):
        log_type = log_type.value
    details = scrub_value(details) if details else None

    level = "error" if log_type == LogType.ERROR.value else "info"
    getattr(logger, level)(f"[{log_type.upper()}] {message}", extra={"log_type": log_type, "user": created_by})

    try:
        entry = SystemLog(
            log_type=log_type,
            message=message,
            details=details,
            created_by=created_by,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        logger.error(f"Failed to write system log: {e}")
        try:
            db.rollback()
        except Exception:
            logger.error("Rollback after system log failure also failed")
        return None


def purge_logs_older_than(db: Session, days: int) -> int:
    """Delete system log rows older than ``days``; returns the number removed."""
    cutoff = datetime.utcnow() - timedelta(days=days)
    deleted = db.query(SystemLog).filter(SystemLog.created_at < cutoff).delete(synchronize_session=False)
    db.commit()
    return deleted
