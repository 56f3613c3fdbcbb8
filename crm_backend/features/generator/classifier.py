"""
crm_backend/features/generator/classifier.py

Cohort classification for the subscription generator.

Each address ends up in exactly one of:
- newly_registered: unknown user, account + subscription jobs
- inactive / active: known user without / with an actual subscription
- skipped: cohort excluded by the operator
Unknown users are dropped without counting when account creation is off.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Iterable, List, Tuple

from crm_backend.features.generator.contracts import (
    ActualSubscriptionLookup,
    EmailValidator,
    UserLookup,
)
from crm_backend.models.generator import (
    DEFAULT_REGISTRATION_SOURCE,
    Cohort,
    GeneratorCounters,
    GeneratorJobs,
    GeneratorWindow,
    GrantJob,
    RegistrationJob,
)
from crm_backend.models.subscription import SubscriptionKind, SubscriptionType


@dataclass(frozen=True)
class ClassificationResult:
    jobs: GeneratorJobs
    counters: GeneratorCounters


def parse_email_lines(raw: str, validator: EmailValidator) -> Tuple[List[str], List[str]]:
    """
    Split operator input into addresses.

    Lines are trimmed and blank lines dropped. Addresses the validator rejects
    produce a warning but are still returned for processing.
    """
    emails: List[str] = []
    warnings: List[str] = []
    for line in raw.split("\n"):
        email = line.strip()
        if not email:
            continue
        if not validator.is_valid(email):
            warnings.append(f"Invalid email: {email}")
        emails.append(email)
    return emails, warnings


def classify(
    emails: Iterable[str],
    subscription_type: SubscriptionType,
    window: GeneratorWindow,
    *,
    kind: SubscriptionKind,
    is_paid: bool,
    create_users: bool,
    include_groups: AbstractSet[Cohort],
    users: UserLookup,
    subscriptions: ActualSubscriptionLookup,
    now: datetime,
    registration_source: str = DEFAULT_REGISTRATION_SOURCE,
) -> ClassificationResult:
    """Classify addresses left to right and build registration and grant jobs."""
    counters = GeneratorCounters()
    jobs = GeneratorJobs()

    def grant(email: str) -> GrantJob:
        return GrantJob(
            subscription_type_id=subscription_type.id,
            email=email,
            type=kind,
            start_time=window.start,
            end_time=window.end,
            is_paid=is_paid,
        )

    for email in emails:
        user = users.find_user_by_email(email)

        if user is None:
            if not create_users:
                continue

            jobs.registrations.append(RegistrationJob(email=email, source=registration_source))
            counters.increment("registrations")

            if Cohort.NEWLY_REGISTERED not in include_groups:
                counters.increment("skipped")
                continue

            jobs.subscribe.append(grant(email))
            counters.increment(Cohort.NEWLY_REGISTERED.value)
            continue

        actual = subscriptions.actual_user_subscription(user.id, now)
        cohort = Cohort.ACTIVE if actual else Cohort.INACTIVE
        if cohort not in include_groups:
            counters.increment("skipped")
            continue

        counters.increment(cohort.value)
        jobs.subscribe.append(grant(user.email))

    return ClassificationResult(jobs=jobs, counters=counters)
