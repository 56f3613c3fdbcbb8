"""
Admin-only subscription operations router.
Requires X-Admin-Key header for all endpoints.
Handles the bulk subscription generator, start-time previews and manual grants.
"""

import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from crm_backend.core.admin_auth import AdminActor, require_admin
from crm_backend.core.logging import get_request_id
from crm_backend.core.queue import RqJobSink
from crm_backend.features.generator.contracts import JobSink
from crm_backend.features.generator.service import run_generator
from crm_backend.features.subscriptions import repository
from crm_backend.features.subscriptions.service import grant_subscription, resolve_start_time
from crm_backend.models.generator import GeneratorRequest, GeneratorResult
from crm_backend.models.subscription import (
    ResolvedStart,
    Subscription,
    SubscriptionKind,
    SubscriptionType,
)

logger = logging.getLogger("crm.admin_subscriptions")

router = APIRouter(prefix="/v1/admin", tags=["admin-subscriptions"])


def get_job_sink() -> JobSink:
    return RqJobSink()


class GrantSubscriptionRequest(BaseModel):
    """Manual grant; start is resolved from history when omitted."""
    subscription_type_id: int
    type: SubscriptionKind = Field(default=SubscriptionKind.REGULAR)
    is_paid: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


@router.get("/subscription-types", response_model=List[SubscriptionType])
def list_active_subscription_types(actor: AdminActor = Depends(require_admin)):
    return repository.get_all_active_types()


@router.post("/subscriptions/generate", response_model=GeneratorResult)
def generate_subscriptions(
    body: GeneratorRequest,
    request: Request,
    actor: AdminActor = Depends(require_admin),
    sink: JobSink = Depends(get_job_sink),
):
    """Run the generator; only `generate: true` dispatches jobs."""
    logger.info(
        f"[admin_subscriptions] generator run by {actor.actor_id} generate={body.generate}"
    )
    return run_generator(
        body,
        sink=sink,
        request_id=getattr(request.state, "request_id", None) or get_request_id(),
    )


@router.get("/users/{user_id}/subscriptions/start-time", response_model=ResolvedStart)
def preview_start_time(
    user_id: int,
    subscription_type_id: int = Query(..., description="Subscription type to grant"),
    actor: AdminActor = Depends(require_admin),
):
    return resolve_start_time(user_id, subscription_type_id)


@router.post("/users/{user_id}/subscriptions", response_model=Subscription, status_code=201)
def create_user_subscription(
    user_id: int,
    body: GrantSubscriptionRequest,
    actor: AdminActor = Depends(require_admin),
):
    logger.info(
        f"[admin_subscriptions] grant type={body.subscription_type_id} user={user_id} by {actor.actor_id}"
    )
    return grant_subscription(
        user_id,
        body.subscription_type_id,
        kind=body.type,
        is_paid=body.is_paid,
        start_time=body.start_time,
        end_time=body.end_time,
    )
