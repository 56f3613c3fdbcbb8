"""
Tests for subscription and generator models.
"""
from datetime import datetime, timedelta, timezone

import pytest

from crm_backend.models.generator import (
    Cohort,
    GeneratorCounters,
    GeneratorJobs,
    GeneratorRequest,
    RegistrationJob,
)
from crm_backend.models.subscription import (
    LIFETIME_LENGTH_DAYS,
    Subscription,
    SubscriptionKind,
    SubscriptionType,
)


NOW = datetime(2021, 2, 1, tzinfo=timezone.utc)


def test_subscription_type_frozen():
    st = SubscriptionType(id=1, name="Monthly", length_days=30)

    try:
        st.length_days = 60
        assert False, "SubscriptionType should be immutable"
    except Exception:
        pass  # Expected


def test_subscription_type_lifetime_threshold():
    assert SubscriptionType(id=1, name="Forever", length_days=LIFETIME_LENGTH_DAYS).is_lifetime
    assert not SubscriptionType(id=2, name="Yearly", length_days=365).is_lifetime


def test_actual_window_is_half_open():
    sub = Subscription(user_id=1, subscription_type_id=1, start_time=NOW, end_time=NOW + timedelta(days=1))
    assert sub.is_actual(NOW)
    assert sub.is_actual(NOW + timedelta(hours=23))
    assert not sub.is_actual(NOW + timedelta(days=1))
    assert not sub.is_actual(NOW - timedelta(seconds=1))


def test_century_span_is_lifetime():
    sub = Subscription(
        user_id=1,
        subscription_type_id=1,
        start_time=NOW,
        end_time=NOW.replace(year=2121),
    )
    assert sub.is_lifetime


def test_subscription_defaults_to_regular_kind():
    sub = Subscription(user_id=1, subscription_type_id=1, start_time=NOW, end_time=NOW + timedelta(days=1))
    assert sub.type == SubscriptionKind.REGULAR
    assert sub.is_paid is False


def test_counters_increment_known_fields_only():
    counters = GeneratorCounters()
    counters.increment("active")
    counters.increment("skipped")
    assert counters.active == 1
    assert counters.outcomes == 2

    with pytest.raises(KeyError):
        counters.increment("bogus")


def test_generator_jobs_wire_keys():
    jobs = GeneratorJobs(registrations=[RegistrationJob(email="a@example.com")])
    assert set(jobs.model_dump()) == {"register", "subscribe"}

    parsed = GeneratorJobs.model_validate({"register": [{"email": "b@example.com"}], "subscribe": []})
    assert [job.email for job in parsed.registrations] == ["b@example.com"]


def test_generator_jobs_field_does_not_shadow_base_model():
    assert "register" not in GeneratorJobs.model_fields
    assert GeneratorJobs.model_fields["registrations"].alias == "register"


def test_generator_request_defaults():
    request = GeneratorRequest(subscription_type_id=1, emails="a@example.com")
    assert request.type == SubscriptionKind.FREE
    assert request.create_users is True
    assert request.user_groups == [Cohort.NEWLY_REGISTERED, Cohort.INACTIVE]
    assert request.generate is False
    assert request.is_paid is False
