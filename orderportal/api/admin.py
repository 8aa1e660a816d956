"""
Admin API routes - run-now jobs, system logs and email diagnostics.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy import desc
from sqlalchemy.orm import Session

from orderportal.core.logging import get_logger
from orderportal.core.security import Role, get_current_user_context, require_admin
from orderportal.db.models import SystemLog, LogType
from orderportal.db.session import get_db
from orderportal.services.deadline_alerts import send_due_date_alerts
from orderportal.services.inventory import InventoryLookupError, get_inventory_client
from orderportal.services.notifications import get_dispatcher
from orderportal.services.reconciliation import check_order_statuses
from orderportal.services.status_resolver import resolve_by_qr
from orderportal.services.system_log import log_event, purge_logs_older_than

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = get_logger(__name__)


# ============= SCHEMAS =============

class SystemLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    log_type: str
    message: str
    details: Optional[Dict[str, Any]] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class SystemLogPage(BaseModel):
    logs: List[SystemLogResponse]
    total: int


class JobResponse(BaseModel):
    success: bool
    message: str
    summary: Dict[str, Any]


# ============= ROUTES =============

@router.post("/check-statuses", response_model=JobResponse)
async def run_status_check(
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db),
):
    """
    Run a reconciliation pass now.

    Admins check every order; client users only check orders owned by
    their own company.
    """
    client_filter = None
    if user_context["role"] != Role.ADMIN:
        client_filter = user_context.get("company_name")
        if not client_filter:
            raise HTTPException(status_code=403, detail="No company associated with this account")

    username = user_context["username"]
    scope = f" for {client_filter}" if client_filter else ""
    log_event(db, LogType.STATUS_CHECK, f"Manual status check started{scope}", created_by=username)

    try:
        summary = await check_order_statuses(db, client_filter=client_filter)
    except Exception as e:
        logger.error(f"Manual status check failed: {e}", exc_info=True)
        db.rollback()
        log_event(db, LogType.ERROR, "Manual status check failed", {"error": str(e)}, created_by=username)
        raise HTTPException(status_code=500, detail="Failed to check order statuses")

    log_event(db, LogType.STATUS_CHECK, f"Manual status check completed{scope}", summary, created_by=username)
    return JobResponse(success=True, message="Order status check completed", summary=summary)


@router.post("/send-alerts", response_model=JobResponse)
def run_due_date_alerts(
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Send due-date alerts now (admin only)."""
    username = user_context["username"]
    log_event(db, LogType.EMAIL, "Manual due date alert check started", created_by=username)

    try:
        summary = send_due_date_alerts(db)
    except Exception as e:
        logger.error(f"Manual due date alerts failed: {e}", exc_info=True)
        db.rollback()
        log_event(db, LogType.ERROR, "Manual due date alerts failed", {"error": str(e)}, created_by=username)
        raise HTTPException(status_code=500, detail="Failed to send due date alerts")

    log_event(db, LogType.EMAIL, "Manual due date alert check completed", summary, created_by=username)
    return JobResponse(success=True, message="Due date alerts sent", summary=summary)


@router.get("/logs", response_model=SystemLogPage)
async def list_system_logs(
    log_type: Optional[str] = Query(None, description="Filter by log type (\"all\" for every type)"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List system logs, newest first (admin only)."""
    query = db.query(SystemLog)
    if log_type and log_type != "all":
        query = query.filter(SystemLog.log_type == log_type)

    total = query.count()
    logs = query.order_by(desc(SystemLog.created_at), desc(SystemLog.id)).offset(offset).limit(limit).all()

    return SystemLogPage(
        logs=[SystemLogResponse.model_validate(log) for log in logs],
        total=total,
    )


@router.delete("/logs")
async def clear_old_logs(
    days: int = Query(30, ge=1, description="Delete entries older than this many days"),
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete system logs older than ``days`` (admin only)."""
    deleted = purge_logs_older_than(db, days)
    log_event(
        db,
        LogType.INFO,
        f"Cleared {deleted} logs older than {days} days",
        {"deleted": deleted, "days": days},
        created_by=user_context["username"],
    )
    return {"message": f"Deleted {deleted} log entries older than {days} days", "deleted": deleted}


@router.get("/email/verify")
def verify_email_configuration(user_context: dict = Depends(require_admin)):
    """Check SMTP connectivity and login (admin only)."""
    dispatcher = get_dispatcher()
    if not dispatcher.is_configured:
        return {"configured": False, "connected": False, "message": "Email host is not configured"}

    connected = dispatcher.verify_connection()
    return {
        "configured": True,
        "connected": connected,
        "message": "Email server is ready" if connected else "Email server connection failed",
    }


@router.get("/inventory/qr/{qr_code}")
async def lookup_by_qr_code(
    qr_code: str,
    user_context: dict = Depends(get_current_user_context),
):
    """Look up a shipment by QR code and report the portal status it maps to."""
    try:
        resolution = await resolve_by_qr(get_inventory_client(), qr_code)
    except InventoryLookupError as e:
        logger.warning(f"QR lookup for {qr_code} failed: {e}")
        raise HTTPException(status_code=502, detail="Inventory system unavailable")

    if not resolution.found:
        raise HTTPException(status_code=404, detail="Shipment not found")

    record = resolution.record
    return {
        "qr_code": qr_code,
        "status": resolution.status.value,
        "source": record.source,
        "client_name": record.client_name,
        "client_po_number": record.client_po_number,
        "inventory_status": record.raw_status,
        "details": record.details(),
    }
