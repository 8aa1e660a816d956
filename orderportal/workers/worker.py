"""
Background worker using RQ (Redis Queue).

Run with ``python -m orderportal.workers.worker``; pass ``--with-schedule`` to
(re)register the recurring status check and alert jobs before working. The
recurring jobs are released by the ``rqscheduler`` process.
"""
import sys

from redis import Redis
from rq import Worker, Queue

from orderportal.core.config import settings
from orderportal.core.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

QUEUE_NAMES = ("high", "default", "low")


def run_worker(with_schedule: bool = False):
    """Start the RQ worker."""
    redis_conn = Redis.from_url(settings.REDIS_URL)

    if with_schedule:
        from orderportal.workers.jobs import setup_scheduled_jobs
        setup_scheduled_jobs()

    worker = Worker(
        queues=[Queue(name, connection=redis_conn) for name in QUEUE_NAMES],
        connection=redis_conn,
        name="orderportal-worker",
    )
    logger.info("Starting order portal worker...")
    worker.work()


if __name__ == "__main__":
    run_worker(with_schedule="--with-schedule" in sys.argv[1:])
