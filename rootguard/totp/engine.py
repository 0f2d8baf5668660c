"""
Time-Code Engine — HOTP over a time-derived counter (RFC 4226 / RFC 6238).

A code is valid for the current step and one step either side, so a
client clock up to one step off is still accepted.
"""
import hmac
import struct
import hashlib
from datetime import datetime, timezone
from typing import Optional, Union

from ..exceptions import ConstructionError
from . import base32

DEFAULT_STEP = 30
DEFAULT_DIGITS = 6

# windows checked by validate(), relative to the current counter
SKEW_WINDOWS = (-1, 0, 1)

When = Union[datetime, int, float]


def unix_seconds(when: When) -> float:
    """Seconds since the epoch; naive datetimes are taken as UTC."""
    if isinstance(when, datetime):
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return when.timestamp()
    return float(when)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TimeCode:
    """Compute and check time-based one-time codes for one secret.

    Args:
        secret: Raw key bytes, or a Base32 string.
        step: Time-step size in seconds.
        digits: Number of digits in each code.

    Raises:
        ConstructionError: If the secret is empty or the parameters are
            out of range.
    """

    def __init__(
        self,
        secret: Union[bytes, bytearray, str],
        step: int = DEFAULT_STEP,
        digits: int = DEFAULT_DIGITS,
    ):
        if isinstance(secret, str):
            secret = base32.decode(secret)
        if not secret:
            raise ConstructionError("TOTP secret must not be empty")
        if step < 1:
            raise ConstructionError(f"step must be >= 1 second, got {step}")
        if not 6 <= digits <= 10:
            raise ConstructionError(f"digits must be between 6 and 10, got {digits}")
        self._key = bytes(secret)
        self.step = step
        self.digits = digits

    def __repr__(self) -> str:
        return f"<TimeCode step={self.step} digits={self.digits}>"

    def counter_for(self, when: When) -> int:
        return int(unix_seconds(when) // self.step)

    def code(self, counter: int) -> str:
        if counter < 0:
            raise ValueError(f"counter must not be negative, got {counter}")
        digest = hmac.new(self._key, struct.pack(">Q", counter), hashlib.sha1).digest()
        offset = digest[-1] & 0x0F
        value = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
        return str(value % (10 ** self.digits)).zfill(self.digits)

    def current_code(self, when: Optional[When] = None) -> str:
        return self.code(self.counter_for(when if when is not None else _now()))

    def match(self, submitted: str, when: Optional[When] = None) -> Optional[int]:
        """Return the counter whose code equals ``submitted``, if any.

        Only the previous, current and next step are considered.
        """
        if not isinstance(submitted, str) or len(submitted) != self.digits:
            return None
        seconds = unix_seconds(when if when is not None else _now())
        expected = submitted.encode("ascii", "replace")
        for shift in SKEW_WINDOWS:
            counter = self.counter_for(seconds + shift * self.step)
            if counter < 0:
                continue
            if hmac.compare_digest(self.code(counter).encode("ascii"), expected):
                return counter
        return None

    def validate(self, submitted: str, when: Optional[When] = None) -> bool:
        return self.match(submitted, when) is not None


def current_code(
    secret: Union[bytes, str], when: Optional[When] = None, **kwargs
) -> str:
    return TimeCode(secret, **kwargs).current_code(when)


def validate(
    secret: Union[bytes, str], submitted: str, when: Optional[When] = None, **kwargs
) -> bool:
    """Check ``submitted`` against ``secret`` at ``when`` (default: now)."""
    return TimeCode(secret, **kwargs).validate(submitted, when)
