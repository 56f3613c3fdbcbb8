"""
crm_backend/features/generator/service.py

Subscription generator run (dry run or generate).

Handles:
- Email parsing with advisory validation
- Window defaults (start = now, end = start + type length)
- Cohort classification and counters
- Operator summary
- Dispatch of one generate-subscription message on real runs only
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from crm_backend.core.config import settings
from crm_backend.core.database import as_utc
from crm_backend.core.errors import NotFoundError, ValidationError
from crm_backend.core.logging import log_event
from crm_backend.core.queue import RqJobSink
from crm_backend.features.generator import email as email_validation
from crm_backend.features.generator.classifier import classify, parse_email_lines
from crm_backend.features.generator.contracts import (
    ActualSubscriptionLookup,
    EmailValidator,
    JobSink,
    SubscriptionTypeLookup,
    UserLookup,
)
from crm_backend.features.subscriptions import repository
from crm_backend.features.subscriptions.service import normalize_now
from crm_backend.features.users import service as users_service
from crm_backend.models.generator import (
    GENERATE_SUBSCRIPTION_MESSAGE,
    GeneratorCounters,
    GeneratorRequest,
    GeneratorResult,
    GeneratorWindow,
    SummaryMessage,
)
from crm_backend.models.subscription import SubscriptionType


# Summary lines in display order
SUMMARY_LINES: Tuple[Tuple[str, str], ...] = (
    ("registrations", "Accounts to register: {count}"),
    ("newly_registered", "Subscriptions for newly registered users: {count}"),
    ("inactive", "Subscriptions for inactive users: {count}"),
    ("active", "Subscriptions for active users: {count}"),
    ("skipped", "Skipped users: {count}"),
)


def compute_window(
    subscription_type: SubscriptionType,
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    now: datetime,
) -> GeneratorWindow:
    """
    Window shared by every grant of a run.

    A missing end is start + the type's length in days, also for lifetime
    types; operators granting lifetime access pass the end explicitly.
    """
    start = as_utc(start_time) if start_time is not None else now
    if end_time is not None:
        end = as_utc(end_time)
    else:
        end = start + timedelta(days=subscription_type.length_days)
    if end <= start:
        raise ValidationError("end_time must be after start_time")
    return GeneratorWindow(start=start, end=end)


def build_summary(counters: GeneratorCounters, generate: bool) -> List[SummaryMessage]:
    level = "info" if generate else "warning"
    messages = []
    for name, template in SUMMARY_LINES:
        messages.append(
            SummaryMessage(
                text=template.format(count=getattr(counters, name)),
                type="warning" if name == "skipped" else level,
            )
        )
    return messages


def run_generator(
    request: GeneratorRequest,
    *,
    now: Optional[datetime] = None,
    users: UserLookup = users_service,
    subscriptions: ActualSubscriptionLookup = repository,
    types: SubscriptionTypeLookup = repository,
    validator: EmailValidator = email_validation,
    sink: Optional[JobSink] = None,
    request_id: Optional[str] = None,
) -> GeneratorResult:
    """
    Classify the requested addresses and, when request.generate is set,
    dispatch the resulting jobs.

    Raises:
        ValidationError: If no addresses were given or the window is empty
        NotFoundError: If the subscription type does not exist
    """
    if not request.emails.strip():
        raise ValidationError("At least one email address is required")

    subscription_type = types.find_type(request.subscription_type_id)
    if not subscription_type:
        raise NotFoundError(f"Subscription type {request.subscription_type_id} not found")

    normalized_now = normalize_now(now)
    window = compute_window(subscription_type, request.start_time, request.end_time, normalized_now)
    emails, warnings = parse_email_lines(request.emails, validator)

    result = classify(
        emails,
        subscription_type,
        window,
        kind=request.type,
        is_paid=request.is_paid,
        create_users=request.create_users,
        include_groups=frozenset(request.user_groups),
        users=users,
        subscriptions=subscriptions,
        now=normalized_now,
        registration_source=settings.GENERATOR_REGISTRATION_SOURCE,
    )

    job_id = None
    if request.generate:
        job_sink = sink or RqJobSink()
        job_id = job_sink.emit(
            GENERATE_SUBSCRIPTION_MESSAGE,
            result.jobs.model_dump(mode="json", by_alias=True),
        )

    log_event(
        "info",
        "generator.completed",
        request_id=request_id,
        event_type="subscription_generator",
        extra={
            "subscription_type_id": subscription_type.id,
            "counters": result.counters.model_dump(),
            "invalid_emails": len(warnings),
            "dispatched": request.generate,
            "job_id": job_id,
        },
    )

    return GeneratorResult(
        counters=result.counters,
        jobs=result.jobs,
        messages=build_summary(result.counters, request.generate),
        warnings=warnings,
        dispatched=request.generate,
        job_id=job_id,
    )
