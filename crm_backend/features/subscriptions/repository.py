"""
crm_backend/features/subscriptions/repository.py

SQL access for subscription types and granted subscriptions.

The module itself satisfies the SubscriptionTypeLookup and
ActualSubscriptionLookup protocols used by the generator.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, insert, desc

from crm_backend.core.database import (
    get_db_session,
    subscription_types,
    subscriptions,
    as_utc,
)
from crm_backend.models.subscription import Subscription, SubscriptionKind, SubscriptionType


def _to_type(row) -> SubscriptionType:
    return SubscriptionType(
        id=row.id,
        name=row.name,
        length_days=row.length_days,
        active=bool(row.active),
        extension_method=row.extension_method,
    )


def _to_subscription(row) -> Subscription:
    return Subscription(
        id=row.id,
        user_id=row.user_id,
        subscription_type_id=row.subscription_type_id,
        start_time=as_utc(row.start_time),
        end_time=as_utc(row.end_time),
        is_paid=bool(row.is_paid),
        type=SubscriptionKind(row.type),
    )


def create_type(
    name: str,
    length_days: int,
    *,
    active: bool = True,
    extension_method: str = "extend_same_type",
) -> SubscriptionType:
    """Insert a subscription type and return it."""
    with get_db_session() as session:
        result = session.execute(
            insert(subscription_types).values(
                name=name,
                length_days=length_days,
                active=active,
                extension_method=extension_method,
            )
        )
        type_id = result.inserted_primary_key[0]
    return SubscriptionType(
        id=type_id,
        name=name,
        length_days=length_days,
        active=active,
        extension_method=extension_method,
    )


def find_type(type_id: int) -> Optional[SubscriptionType]:
    with get_db_session() as session:
        row = session.execute(
            select(subscription_types).where(subscription_types.c.id == type_id)
        ).first()
        return _to_type(row) if row else None


def get_all_active_types() -> List[SubscriptionType]:
    """Active subscription types ordered by name (generator type picker)."""
    with get_db_session() as session:
        rows = session.execute(
            select(subscription_types)
            .where(subscription_types.c.active == True)  # noqa: E712
            .order_by(subscription_types.c.name, subscription_types.c.id)
        ).all()
        return [_to_type(row) for row in rows]


def user_subscriptions(user_id: int) -> List[Subscription]:
    """All spans of a user, past and future, in start order."""
    with get_db_session() as session:
        rows = session.execute(
            select(subscriptions)
            .where(subscriptions.c.user_id == user_id)
            .order_by(subscriptions.c.start_time, subscriptions.c.id)
        ).all()
        return [_to_subscription(row) for row in rows]


def actual_user_subscription(user_id: int, at: datetime) -> Optional[Subscription]:
    """
    Get the subscription covering `at` for a user (any type).

    When several overlap, the one ending last wins.
    """
    at = as_utc(at)
    with get_db_session() as session:
        row = session.execute(
            select(subscriptions)
            .where(subscriptions.c.user_id == user_id)
            .where(subscriptions.c.start_time <= at)
            .where(subscriptions.c.end_time > at)
            .order_by(desc(subscriptions.c.end_time), desc(subscriptions.c.id))
            .limit(1)
        ).first()
        return _to_subscription(row) if row else None


def add_subscription(
    user_id: int,
    subscription_type_id: int,
    start_time: datetime,
    end_time: datetime,
    *,
    is_paid: bool = False,
    kind: SubscriptionKind = SubscriptionKind.REGULAR,
) -> Subscription:
    """Insert a new span. Existing spans are never modified."""
    start_time = as_utc(start_time)
    end_time = as_utc(end_time)
    with get_db_session() as session:
        result = session.execute(
            insert(subscriptions).values(
                user_id=user_id,
                subscription_type_id=subscription_type_id,
                start_time=start_time,
                end_time=end_time,
                is_paid=is_paid,
                type=SubscriptionKind(kind).value,
            )
        )
        subscription_id = result.inserted_primary_key[0]
    return Subscription(
        id=subscription_id,
        user_id=user_id,
        subscription_type_id=subscription_type_id,
        start_time=start_time,
        end_time=end_time,
        is_paid=is_paid,
        type=kind,
    )
