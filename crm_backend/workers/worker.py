# Run this with: rq worker -u redis://localhost:6379 subscriptions
# or: python -m crm_backend.workers.worker (small worker loop for dev)
import logging

from redis import Redis
from rq import Queue, Worker

from crm_backend.core.config import settings
from crm_backend.core.logging import configure_logging

configure_logging(settings.ENV)
logger = logging.getLogger("crm")


def main() -> None:
    conn = Redis.from_url(settings.REDIS_URL)
    queue = Queue(settings.GENERATOR_QUEUE_NAME, connection=conn)
    worker = Worker([queue], connection=conn)
    logger.info(f"Starting RQ worker on queue {settings.GENERATOR_QUEUE_NAME}.")
    worker.work()


if __name__ == '__main__':
    main()
