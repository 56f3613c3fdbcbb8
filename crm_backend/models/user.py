from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    source: Optional[str] = None
    created_at: datetime

    @staticmethod
    def normalized_email(email: str) -> str:
        return email.strip().lower()
