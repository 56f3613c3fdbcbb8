"""
crm_backend/features/subscriptions/extension.py

Start-time resolution for new subscription grants.

Handles:
- extend_same_type: queue a grant after the user's same-type subscriptions
- extend_actual: queue a grant after whatever is active right now
- start_now: always start immediately

All resolvers are pure functions of (now, spans, type). Callers pass `now`
explicitly; nothing here reads the clock.
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, Optional

from crm_backend.core.errors import ValidationError
from crm_backend.models.subscription import ResolvedStart, Subscription, SubscriptionType


Resolver = Callable[[datetime, Iterable[Subscription], SubscriptionType], ResolvedStart]


def _later(current: Optional[datetime], candidate: datetime) -> datetime:
    if current is None or candidate > current:
        return candidate
    return current


def resolve_start(
    now: datetime,
    user_subscriptions: Iterable[Subscription],
    target_type: SubscriptionType,
) -> ResolvedStart:
    """
    Resolve the start of a new `target_type` grant.

    A currently active same-type subscription makes the grant an extension: it
    starts at the latest end among the user's unexpired same-type
    subscriptions (gaps between them do not matter).

    Without one, the grant still queues behind future same-type subscriptions
    and behind subscriptions of other types active at `now`, but is not an
    extension.

    An active lifetime subscription of the target type is never extended from
    (its end is a century away); resolution continues as if it did not exist.
    """
    has_actual_same = False
    max_same_end: Optional[datetime] = None
    max_other_actual_end: Optional[datetime] = None

    for span in user_subscriptions:
        actual = span.is_actual(now)
        if span.subscription_type_id == target_type.id:
            if actual and span.is_lifetime:
                continue
            if actual:
                has_actual_same = True
            if span.end_time >= now:
                max_same_end = _later(max_same_end, span.end_time)
        elif actual:
            max_other_actual_end = _later(max_other_actual_end, span.end_time)

    if has_actual_same:
        return ResolvedStart(date=max_same_end, is_extending=True)

    anchor = max_same_end
    if max_other_actual_end is not None:
        anchor = _later(anchor, max_other_actual_end)
    if anchor is not None:
        return ResolvedStart(date=anchor, is_extending=False)

    return ResolvedStart(date=now, is_extending=False)


def resolve_extend_actual(
    now: datetime,
    user_subscriptions: Iterable[Subscription],
    target_type: SubscriptionType,
) -> ResolvedStart:
    """Start after the latest-ending active subscription of any type."""
    latest: Optional[datetime] = None
    for span in user_subscriptions:
        if span.is_actual(now) and not span.is_lifetime:
            latest = _later(latest, span.end_time)
    if latest is None:
        return ResolvedStart(date=now, is_extending=False)
    return ResolvedStart(date=latest, is_extending=True)


def resolve_start_now(
    now: datetime,
    user_subscriptions: Iterable[Subscription],
    target_type: SubscriptionType,
) -> ResolvedStart:
    return ResolvedStart(date=now, is_extending=False)


EXTENSION_METHODS: Dict[str, Resolver] = {
    "extend_same_type": resolve_start,
    "extend_actual": resolve_extend_actual,
    "start_now": resolve_start_now,
}


def get_extension_method(name: str) -> Resolver:
    """
    Look up a resolver by the name stored on the subscription type.

    Raises:
        ValidationError: If no resolver is registered under `name`
    """
    try:
        return EXTENSION_METHODS[name]
    except KeyError:
        raise ValidationError(f"Unknown extension method: {name}") from None


def resolve_for_type(
    now: datetime,
    user_subscriptions: Iterable[Subscription],
    target_type: SubscriptionType,
) -> ResolvedStart:
    """Resolve using the extension method configured on `target_type`."""
    resolver = get_extension_method(target_type.extension_method)
    return resolver(now, list(user_subscriptions), target_type)
