"""
Background job definitions.
"""
import asyncio
from datetime import datetime
from typing import List, Optional

from redis import Redis
from rq import Queue
from rq_scheduler import Scheduler

from orderportal.core.config import settings
from orderportal.core.logging import get_logger

logger = get_logger(__name__)

SCHEDULED_JOB_PREFIX = "orderportal:"
STATUS_CHECK_JOB_ID = SCHEDULED_JOB_PREFIX + "status-check"


def get_queue(name: str = "default") -> Queue:
    """Get RQ queue."""
    redis_conn = Redis.from_url(settings.REDIS_URL)
    return Queue(name, connection=redis_conn)


def get_scheduler() -> Scheduler:
    """Get RQ scheduler."""
    redis_conn = Redis.from_url(settings.REDIS_URL)
    return Scheduler(connection=redis_conn)


# ============= JOB FUNCTIONS =============

def check_order_statuses_job(client_filter: Optional[str] = None):
    """Background job running one reconciliation pass."""
    from orderportal.db.models import LogType
    from orderportal.db.session import get_db_context
    from orderportal.services.reconciliation import check_order_statuses
    from orderportal.services.system_log import log_event

    logger.info("Running scheduled order status check", extra={"job": "status_check"})

    with get_db_context() as db:
        log_event(db, LogType.STATUS_CHECK, "Scheduled status check started")
        try:
            summary = asyncio.run(check_order_statuses(db, client_filter=client_filter))
        except Exception as e:
            logger.error(f"Scheduled status check failed: {e}", exc_info=True)
            db.rollback()
            log_event(db, LogType.ERROR, "Scheduled status check failed", {"error": str(e)})
            raise
        log_event(db, LogType.STATUS_CHECK, "Scheduled status check completed", summary)
    return summary


def send_due_date_alerts_job():
    """Background job sending the deadline alerts."""
    from orderportal.db.models import LogType
    from orderportal.db.session import get_db_context
    from orderportal.services.deadline_alerts import send_due_date_alerts
    from orderportal.services.system_log import log_event

    logger.info("Running scheduled due date alert check", extra={"job": "due_date_alerts"})

    with get_db_context() as db:
        log_event(db, LogType.EMAIL, "Scheduled due date alert check started")
        try:
            summary = send_due_date_alerts(db)
        except Exception as e:
            logger.error(f"Scheduled due date alerts failed: {e}", exc_info=True)
            db.rollback()
            log_event(db, LogType.ERROR, "Scheduled due date alerts failed", {"error": str(e)})
            raise
        log_event(db, LogType.EMAIL, "Scheduled due date alert check completed", summary)
    return summary


# ============= QUEUE HELPERS =============

def enqueue_status_check(client_filter: Optional[str] = None):
    """Queue a reconciliation pass."""
    queue = get_queue("high")
    return queue.enqueue(check_order_statuses_job, client_filter)


def enqueue_due_date_alerts():
    """Queue the deadline alert sweep."""
    queue = get_queue("default")
    return queue.enqueue(send_due_date_alerts_job)


# ============= SCHEDULING =============

def daily_time_to_cron(value: str) -> str:
    """Turn "HH:MM" into a daily cron expression ("MM HH * * *")."""
    try:
        hour_text, minute_text = value.strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except ValueError:
        raise ValueError(f"Invalid daily check time {value!r}, expected HH:MM")
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid daily check time {value!r}, expected HH:MM")
    return f"{minute} {hour} * * *"


def _load_schedule_settings():
    from orderportal.db.session import get_db_context
    from orderportal.services.order_queries import get_int_setting, get_list_setting

    with get_db_context() as db:
        interval = get_int_setting(
            db, "check_frequency_minutes", settings.STATUS_CHECK_INTERVAL_MINUTES, minimum=1
        )
        times = get_list_setting(db, "daily_check_times", settings.ALERT_CHECK_TIMES)
    return interval, times


def clear_scheduled_jobs(scheduler: Scheduler) -> int:
    """Cancel previously registered portal jobs so restarts don't duplicate them."""
    cancelled = 0
    for job in scheduler.get_jobs():
        if job.id and job.id.startswith(SCHEDULED_JOB_PREFIX):
            scheduler.cancel(job)
            cancelled += 1
    return cancelled


def setup_scheduled_jobs(scheduler: Optional[Scheduler] = None) -> List[str]:
    """
    Register the recurring jobs:

    - the reconciliation pass every ``check_frequency_minutes``
    - the deadline alert sweep at each ``daily_check_times`` entry (UTC)

    Database settings override the config defaults. Returns the job ids.
    """
    scheduler = scheduler or get_scheduler()
    interval_minutes, daily_times = _load_schedule_settings()

    clear_scheduled_jobs(scheduler)

    scheduler.schedule(
        scheduled_time=datetime.utcnow(),
        func=check_order_statuses_job,
        interval=interval_minutes * 60,
        repeat=None,
        id=STATUS_CHECK_JOB_ID,
        queue_name="high",
    )
    job_ids = [STATUS_CHECK_JOB_ID]

    for value in daily_times:
        try:
            cron = daily_time_to_cron(value)
        except ValueError as e:
            logger.warning(f"Skipping alert schedule: {e}")
            continue
        job_id = f"{SCHEDULED_JOB_PREFIX}due-date-alerts-{value.strip().replace(':', '')}"
        scheduler.cron(
            cron,
            func=send_due_date_alerts_job,
            repeat=None,
            id=job_id,
            queue_name="default",
        )
        job_ids.append(job_id)

    logger.info(
        f"Scheduled jobs configured: status check every {interval_minutes} min, "
        f"alerts at {', '.join(daily_times)}"
    )
    return job_ids
