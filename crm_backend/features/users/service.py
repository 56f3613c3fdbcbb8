"""
User domain service.
- find_user_by_email(email)
- get_user(user_id)
- register_user(email, source)
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, insert

from crm_backend.core.database import get_db_session, users as app_users, as_utc
from crm_backend.models.user import User


def _to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        source=row.source,
        created_at=as_utc(row.created_at),
    )


def get_user(user_id: int) -> Optional[User]:
    with get_db_session() as session:
        row = session.execute(select(app_users).where(app_users.c.id == user_id)).first()
        return _to_user(row) if row else None


def find_user_by_email(email: str) -> Optional[User]:
    normalized = User.normalized_email(email)
    if not normalized:
        return None
    with get_db_session() as session:
        row = session.execute(select(app_users).where(app_users.c.email == normalized)).first()
        return _to_user(row) if row else None


def register_user(email: str, source: Optional[str] = None) -> User:
    """Create a user for `email`, or return the existing one (idempotent)."""
    existing = find_user_by_email(email)
    if existing:
        return existing

    now = datetime.now(timezone.utc)
    normalized = User.normalized_email(email)
    with get_db_session() as session:
        result = session.execute(
            insert(app_users).values(
                email=normalized,
                source=source,
                created_at=now,
            )
        )
        user_id = result.inserted_primary_key[0]

    return User(id=user_id, email=normalized, source=source, created_at=now)
