"""
crm_backend/models/generator.py

Models for the bulk subscription generator.

The generator turns a list of email addresses into two job lists that are
shipped to a worker in one message:
- register: accounts to create
- subscribe: subscriptions to grant for one shared window
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from crm_backend.models.subscription import SubscriptionKind


GENERATE_SUBSCRIPTION_MESSAGE = "generate-subscription"
DEFAULT_REGISTRATION_SOURCE = "subscriptiongenerator"


class Cohort(str, Enum):
    """Bucket an email address falls into during a generator run."""
    NEWLY_REGISTERED = "newly_registered"
    INACTIVE = "inactive"
    ACTIVE = "active"


class GeneratorCounters(BaseModel):
    """
    Per-run counters.

    registrations counts accounts to create; the other four are mutually
    exclusive outcomes of one processed address.
    """
    registrations: int = 0
    newly_registered: int = 0
    inactive: int = 0
    active: int = 0
    skipped: int = 0

    def increment(self, name: str) -> None:
        if name not in type(self).model_fields:
            raise KeyError(name)
        setattr(self, name, getattr(self, name) + 1)

    @property
    def outcomes(self) -> int:
        return self.newly_registered + self.inactive + self.active + self.skipped


class RegistrationJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    send_email: bool = True
    source: str = DEFAULT_REGISTRATION_SOURCE
    check_email: bool = False


class GrantJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    subscription_type_id: int
    email: str
    type: SubscriptionKind
    start_time: datetime
    end_time: datetime
    is_paid: bool = False


class GeneratorJobs(BaseModel):
    """
    Payload of the generate-subscription message.

    On the wire the account list is keyed "register".
    """
    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    registrations: List[RegistrationJob] = Field(default_factory=list, alias="register")
    subscribe: List[GrantJob] = Field(default_factory=list)


class GeneratorWindow(BaseModel):
    """Start/end applied to every grant of one run."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class GeneratorRequest(BaseModel):
    """Operator input for one generator run."""
    subscription_type_id: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_paid: bool = False
    type: SubscriptionKind = SubscriptionKind.FREE
    emails: str = Field(..., description="One email address per line")
    create_users: bool = True
    user_groups: List[Cohort] = Field(
        default_factory=lambda: [Cohort.NEWLY_REGISTERED, Cohort.INACTIVE]
    )
    generate: bool = Field(default=False, description="False runs a dry run")


class SummaryMessage(BaseModel):
    text: str
    type: Literal["info", "warning"]


class GeneratorResult(BaseModel):
    counters: GeneratorCounters
    jobs: GeneratorJobs
    messages: List[SummaryMessage]
    warnings: List[str] = Field(default_factory=list)
    dispatched: bool = False
    job_id: Optional[str] = None
