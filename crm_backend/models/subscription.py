"""
crm_backend/models/subscription.py

Subscription types, granted subscription spans and resolved start times.

A span covers [start_time, end_time). Extension never rewrites a span; it
produces a new one starting where an existing one ends.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# Grants meant to never expire are stored as start + 100 years; anything
# spanning at least 99 years counts as lifetime.
LIFETIME_LENGTH_DAYS = 36135
LIFETIME_SPAN = timedelta(days=LIFETIME_LENGTH_DAYS)
LIFETIME_GRANT_YEARS = 100


class SubscriptionKind(str, Enum):
    """How a subscription was granted (stored in the `type` column)."""
    REGULAR = "regular"
    FREE = "free"
    DONATION = "donation"
    GIFT = "gift"
    SPECIAL = "special"
    UPGRADE = "upgrade"
    PREPAID = "prepaid"


class SubscriptionType(BaseModel):
    """
    A product a user can be subscribed to.

    length_days is the nominal length of one grant; values at or above
    LIFETIME_LENGTH_DAYS mean the grant does not expire.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    length_days: int = Field(ge=0)
    active: bool = True
    extension_method: str = "extend_same_type"

    @property
    def is_lifetime(self) -> bool:
        return self.length_days >= LIFETIME_LENGTH_DAYS


class Subscription(BaseModel):
    """One granted subscription span."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    user_id: int
    subscription_type_id: int
    start_time: datetime
    end_time: datetime
    is_paid: bool = False
    type: SubscriptionKind = SubscriptionKind.REGULAR

    def is_actual(self, at: datetime) -> bool:
        """True when the span covers `at` (start inclusive, end exclusive)."""
        return self.start_time <= at < self.end_time

    @property
    def is_lifetime(self) -> bool:
        return self.end_time - self.start_time >= LIFETIME_SPAN


class ResolvedStart(BaseModel):
    """Start of a new grant and whether it continues a same-type grant."""
    model_config = ConfigDict(frozen=True)

    date: datetime
    is_extending: bool = False
