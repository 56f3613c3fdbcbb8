"""Collaborators the subscription generator depends on."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from crm_backend.models.subscription import Subscription, SubscriptionType
from crm_backend.models.user import User


class UserLookup(Protocol):
    def find_user_by_email(self, email: str) -> Optional[User]: ...


class ActualSubscriptionLookup(Protocol):
    def actual_user_subscription(self, user_id: int, at: datetime) -> Optional[Subscription]: ...


class SubscriptionTypeLookup(Protocol):
    def find_type(self, type_id: int) -> Optional[SubscriptionType]: ...


class EmailValidator(Protocol):
    def is_valid(self, email: str) -> bool: ...


class JobSink(Protocol):
    def emit(self, message_type: str, payload: Dict[str, Any]) -> Optional[str]:
        """Accept one message; returns a job id when the transport has one."""
        ...
