"""
Health endpoints for operational monitoring without exposing secrets.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from crm_backend.core.database import check_connection, get_engine

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ["app_users", "subscription_types", "subscriptions"]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "unreachable"})

    present = set(inspect(get_engine()).get_table_names())
    missing = [name for name in REQUIRED_TABLES if name not in present]
    if missing:
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "ok", "missing_tables": missing})
    return {"status": "ok", "database": "ok", "missing_tables": []}
