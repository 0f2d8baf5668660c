"""Small helpers shared across RootGuard components."""
import base64
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Union

Clock = Callable[[], datetime]
Duration = Union[timedelta, int, float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_timedelta(value: Duration) -> timedelta:
    """Accept a timedelta or a number of seconds."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected timedelta or seconds, got {type(value).__name__}")
    return timedelta(seconds=value)


def random_token(nbytes: int) -> str:
    """URL-safe Base64 of ``nbytes`` random bytes, without padding."""
    return base64.urlsafe_b64encode(secrets.token_bytes(nbytes)).rstrip(b"=").decode("ascii")
