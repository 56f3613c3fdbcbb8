# crm_backend/core/queue.py
"""
RQ job sink for asynchronous subscription work.

Messages are enqueued by handler path so the web process never imports the
worker module.
"""
import logging
from typing import Any, Dict, Optional

from redis import Redis
from rq import Queue

from crm_backend.core.config import settings

logger = logging.getLogger("crm")

# message type -> dotted path of the RQ job function handling it
MESSAGE_HANDLERS = {
    "generate-subscription": "crm_backend.workers.generate_subscription.process_generate_subscription",
}

_queue: Optional[Queue] = None


def get_queue() -> Queue:
    """Lazily connect to Redis so importing this module never opens a socket."""
    global _queue
    if _queue is None:
        redis_conn = Redis.from_url(settings.REDIS_URL)
        _queue = Queue(settings.GENERATOR_QUEUE_NAME, connection=redis_conn)
    return _queue


class RqJobSink:
    """JobSink backed by an RQ queue."""

    def __init__(self, queue: Optional[Queue] = None):
        self._queue = queue

    @property
    def queue(self) -> Queue:
        return self._queue or get_queue()

    def emit(self, message_type: str, payload: Dict[str, Any]) -> Optional[str]:
        """
        Enqueue one message.

        Args:
            message_type: Registered message name (e.g. "generate-subscription")
            payload: JSON-serialisable message body

        Returns:
            RQ job id

        Raises:
            KeyError: If no handler is registered for message_type
        """
        handler = MESSAGE_HANDLERS[message_type]
        job = self.queue.enqueue(
            handler,
            payload,
            job_timeout=settings.GENERATOR_JOB_TIMEOUT,
            result_ttl=settings.GENERATOR_RESULT_TTL,
        )
        logger.info(f"[queue] enqueued {message_type} job {job.id}")
        return job.id
