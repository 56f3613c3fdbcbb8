# crm_backend/workers/generate_subscription.py
"""
RQ handler for generate-subscription messages.

Registers the listed accounts, then grants one subscription per subscribe
entry for the window chosen by the operator.
"""
import logging
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from crm_backend.features.subscriptions import repository
from crm_backend.features.users.service import find_user_by_email, register_user
from crm_backend.models.generator import GeneratorJobs

logger = logging.getLogger("crm")


def process_generate_subscription(payload: Dict[str, Any]) -> Dict[str, int]:
    """
    Apply one generator message.

    Args:
        payload: {"register": [...], "subscribe": [...]} as built by the generator

    Returns:
        Dict with registered, subscribed and failed counts
    """
    try:
        jobs = GeneratorJobs.model_validate(payload)
    except PydanticValidationError as e:
        logger.error(f"[generate_subscription] malformed payload: {e}")
        raise

    stats = {"registered": 0, "subscribed": 0, "failed": 0}

    for job in jobs.registrations:
        register_user(job.email, source=job.source)
        stats["registered"] += 1
        logger.info(f"[generate_subscription] registered {job.email} source={job.source}")

    for job in jobs.subscribe:
        user = find_user_by_email(job.email)
        if user is None:
            stats["failed"] += 1
            logger.warning(f"[generate_subscription] no user for {job.email}, subscription not granted")
            continue
        if repository.find_type(job.subscription_type_id) is None:
            stats["failed"] += 1
            logger.warning(
                f"[generate_subscription] subscription type {job.subscription_type_id} missing for {job.email}"
            )
            continue
        repository.add_subscription(
            user.id,
            job.subscription_type_id,
            job.start_time,
            job.end_time,
            is_paid=job.is_paid,
            kind=job.type,
        )
        stats["subscribed"] += 1

    logger.info(f"[generate_subscription] done {stats}")
    return stats
