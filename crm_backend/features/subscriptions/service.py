"""
crm_backend/features/subscriptions/service.py

Subscription grant service.

Handles:
- Start-time resolution for a user and subscription type
- Granting a subscription using the type's extension method
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from crm_backend.core.database import as_utc
from crm_backend.core.errors import NotFoundError, ValidationError
from crm_backend.core.logging import log_event
from crm_backend.features.subscriptions import repository
from crm_backend.features.subscriptions.extension import resolve_for_type
from crm_backend.features.users.service import get_user
from crm_backend.models.subscription import (
    LIFETIME_GRANT_YEARS,
    ResolvedStart,
    Subscription,
    SubscriptionKind,
    SubscriptionType,
)


def normalize_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if getattr(now, "tzinfo", None) is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def lifetime_end(start: datetime) -> datetime:
    try:
        return start.replace(year=start.year + LIFETIME_GRANT_YEARS)
    except ValueError:
        # Feb 29 without a leap year a century later
        return start.replace(year=start.year + LIFETIME_GRANT_YEARS, day=28)


def default_end(start: datetime, subscription_type: SubscriptionType) -> datetime:
    """End of a grant starting at `start` when no end is given explicitly."""
    if subscription_type.is_lifetime:
        return lifetime_end(start)
    return start + timedelta(days=subscription_type.length_days)


def _require_type(subscription_type_id: int) -> SubscriptionType:
    subscription_type = repository.find_type(subscription_type_id)
    if not subscription_type:
        raise NotFoundError(f"Subscription type {subscription_type_id} not found")
    return subscription_type


def resolve_start_time(
    user_id: int,
    subscription_type_id: int,
    *,
    now: Optional[datetime] = None,
) -> ResolvedStart:
    """
    Resolve where a new grant of the given type would start for a user.

    Raises:
        NotFoundError: If the subscription type does not exist
    """
    subscription_type = _require_type(subscription_type_id)
    normalized_now = normalize_now(now)
    spans = repository.user_subscriptions(user_id)
    return resolve_for_type(normalized_now, spans, subscription_type)


def grant_subscription(
    user_id: int,
    subscription_type_id: int,
    *,
    kind: SubscriptionKind = SubscriptionKind.REGULAR,
    is_paid: bool = False,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Subscription:
    """
    Grant a subscription to a user.

    Without an explicit start_time the start is resolved with the type's
    extension method; without an explicit end_time the type's length is used.

    Raises:
        NotFoundError: If the user or subscription type does not exist
        ValidationError: If the resulting window is empty
    """
    if not get_user(user_id):
        raise NotFoundError(f"User {user_id} not found")
    subscription_type = _require_type(subscription_type_id)

    is_extending = False
    if start_time is None:
        resolved = resolve_for_type(
            normalize_now(now), repository.user_subscriptions(user_id), subscription_type
        )
        start_time = resolved.date
        is_extending = resolved.is_extending
    else:
        start_time = as_utc(start_time)

    end_time = as_utc(end_time) if end_time is not None else default_end(start_time, subscription_type)
    if end_time <= start_time:
        raise ValidationError("Subscription end_time must be after start_time")

    subscription = repository.add_subscription(
        user_id,
        subscription_type.id,
        start_time,
        end_time,
        is_paid=is_paid,
        kind=kind,
    )
    log_event(
        "info",
        "subscriptions.granted",
        request_id=None,
        user_id=user_id,
        event_type="subscription_granted",
        extra={
            "subscription_type_id": subscription_type.id,
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "is_extending": is_extending,
        },
    )
    return subscription
