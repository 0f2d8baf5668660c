"""Session records and the result objects returned to callers."""
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field


class Session(BaseModel):
    """A live session owned by the SessionManager."""

    session_id: str
    user_id: str
    started_at: datetime
    expires_at: datetime
    last_activity_at: datetime
    token_id: Optional[str] = Field(default=None, repr=False)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def time_remaining(self, now: datetime) -> timedelta:
        return max(self.expires_at - now, timedelta(0))


class SessionResult(BaseModel):
    success: bool
    message: str = ""
    session_id: Optional[str] = None
    expires_at: Optional[datetime] = None

    def __bool__(self) -> bool:
        return self.success


class SetupResult(BaseModel):
    success: bool
    message: str = ""
    secret: Optional[str] = Field(default=None, repr=False)
    provisioning_uri: Optional[str] = Field(default=None, repr=False)
    account: Optional[str] = None
    issuer: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success
