"""RootGuard.

Time-based one-time code verification with encrypted secret storage and
time-limited sessions.
"""
from .version import __version__
from .audit import AuditLogger, SecurityEvent, SessionEvent
from .conf import GuardConfig
from .exceptions import (
    GuardError,
    ConstructionError,
    EncryptionError,
    DecryptionError,
    StorageCorruption,
    VaultClosedError,
)
from .models import Session, SessionResult, SetupResult
from .guard import RootGuard

__all__ = [
    "__version__",
    "RootGuard",
    "GuardConfig",
    "AuditLogger",
    "SecurityEvent",
    "SessionEvent",
    "Session",
    "SessionResult",
    "SetupResult",
    "GuardError",
    "ConstructionError",
    "EncryptionError",
    "DecryptionError",
    "StorageCorruption",
    "VaultClosedError",
]
