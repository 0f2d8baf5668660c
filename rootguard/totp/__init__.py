"""RootGuard TOTP — Base32 secrets, code engine and per-user validation."""

from . import base32
from .engine import TimeCode, current_code, validate
from .validator import TotpValidator, provisioning_uri

__all__ = [
    "base32",
    "TimeCode",
    "current_code",
    "validate",
    "TotpValidator",
    "provisioning_uri",
]
