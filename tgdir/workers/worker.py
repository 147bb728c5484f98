from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence

import structlog
from redis import Redis
from rq import Queue, Worker
from tgdir.core.config import get_settings
from tgdir.core.logging import setup_logging
from tgdir.workers import jobs

logger = structlog.get_logger()

QUEUE_NAMES: Sequence[str] = ("default",)
REGISTERED_JOBS = {
    "expire_promotions": jobs.expire_promotions_job,
    "sync_pending_payments": jobs.sync_pending_payments_job,
}


async def main() -> None:
    """Bootstrap the worker, wiring queues and job handlers."""
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    redis_connection = Redis.from_url(settings.redis_url)
    logger.info(
        "worker_bootstrap",
        queues=list(QUEUE_NAMES),
        jobs=list(REGISTERED_JOBS.keys()),
    )

    await asyncio.to_thread(_run_worker, redis_connection, QUEUE_NAMES)


def enqueue_housekeeping(connection: Redis, *, queue_name: str = "default") -> list[str]:
    """Queue one run of every housekeeping job; returns the RQ job ids."""
    queue = Queue(queue_name, connection=connection)
    job_ids = []
    for name, func in REGISTERED_JOBS.items():
        job = queue.enqueue(func, description=name, result_ttl=3600)
        job_ids.append(job.id)
    logger.info("housekeeping_enqueued", queue=queue_name, job_ids=job_ids)
    return job_ids


def _run_worker(connection: Redis, queue_names: Sequence[str]) -> None:
    """Run the RQ worker in a background thread."""
    queues = [Queue(name, connection=connection) for name in queue_names]
    worker = Worker(queues, connection=connection, name="tgdir-worker")
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    if "--enqueue" in sys.argv[1:]:
        enqueue_housekeeping(Redis.from_url(get_settings().redis_url))
    else:
        asyncio.run(main())
