"""
Audit Events — Event taxonomy and emitter for security-relevant activity.

The core only decides *what* happened. Where events end up (file, syslog,
SIEM) is up to the sink passed to :class:`AuditLogger`; without a sink
events are only written to the ``rootguard.audit`` logger.

Security Note:
    Event details must never contain secrets, codes, keys or ciphertext.
"""
import socket
import logging
from enum import StrEnum
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import orjson

logger = logging.getLogger("rootguard.audit")

AuditSink = Callable[[dict[str, Any]], None]


class SecurityEvent(StrEnum):
    TOTP_SETUP = "TotpSetup"
    TOTP_VALIDATION_SUCCESS = "TotpValidationSuccess"
    TOTP_VALIDATION_FAILURE = "TotpValidationFailure"
    UNAUTHORIZED_ACCESS = "UnauthorizedAccess"
    SUSPICIOUS_ACTIVITY = "SuspiciousActivity"
    SECURITY_VIOLATION = "SecurityViolation"


class SessionEvent(StrEnum):
    CREATED = "Created"
    VALIDATED = "Validated"
    TERMINATED = "Terminated"
    EXPIRED = "Expired"


class AuditLogger:
    """Emit discrete audit events to a sink and to the audit logger.

    Args:
        sink: Optional callable receiving each event as a dict. Sink errors
            are logged and never propagate into the core.
        hostname: Host name recorded on every event (defaults to the
            current host).
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
        hostname: Optional[str] = None,
    ):
        self._sink = sink
        self._hostname = hostname or socket.gethostname()

    def _emit(self, entry: dict[str, Any], level: int) -> None:
        entry["timestamp"] = datetime.now(timezone.utc)
        entry["machine_name"] = self._hostname
        if logger.isEnabledFor(level):
            logger.log(level, orjson.dumps(entry).decode("utf-8"))
        if self._sink is not None:
            try:
                self._sink(entry)
            except Exception as err:
                logger.error(
                    "Audit sink failed for event %s: %s", entry["event_type"], err,
                )

    def log_security_event(
        self, event: SecurityEvent, user_id: str, details: str
    ) -> None:
        level = (
            logging.INFO
            if event in (SecurityEvent.TOTP_SETUP, SecurityEvent.TOTP_VALIDATION_SUCCESS)
            else logging.WARNING
        )
        self._emit(
            {
                "event_type": f"Security.{event}",
                "user_id": user_id,
                "details": details,
            },
            level,
        )

    def log_session_event(
        self, session_id: str, event: SessionEvent, details: str
    ) -> None:
        self._emit(
            {
                "event_type": f"Session.{event}",
                "session_id": session_id,
                "details": details,
            },
            logging.INFO,
        )

    def log_system_event(
        self, component: str, message: str, level: int = logging.INFO
    ) -> None:
        """Report an internal condition such as storage corruption."""
        self._emit(
            {
                "event_type": "System",
                "component": component,
                "message": message,
                "level": logging.getLevelName(level),
            },
            level,
        )
