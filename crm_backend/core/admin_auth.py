"""
Admin authentication for subscription operations.

Admin routes require the shared X-Admin-Key header. The key is read from
ADMIN_API_KEY, falling back to settings.ADMIN_KEY; with neither configured
every admin request is rejected.
"""
import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from crm_backend.core.config import settings
from crm_backend.core.errors import PermissionError


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_id: str  # "key:<hash>"
    actor_display: Optional[str] = None


def get_admin_api_key() -> Optional[str]:
    env_key = os.getenv("ADMIN_API_KEY")
    if env_key:
        return env_key
    return settings.ADMIN_KEY


def require_admin(request: Request) -> AdminActor:
    """FastAPI dependency guarding admin routes."""
    expected_key = get_admin_api_key()
    header_key = request.headers.get("X-Admin-Key", "").strip()
    if not expected_key or not header_key or not hmac.compare_digest(header_key, expected_key):
        raise PermissionError("Invalid or missing X-Admin-Key header")

    key_hash = hashlib.sha256(header_key.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"key:{key_hash}", actor_display="Admin Key")
