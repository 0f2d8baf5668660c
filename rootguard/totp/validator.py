"""
TotpValidator — Per-user code validation backed by the SecretStore.

Handles secret provisioning (one secret per user, explicit reset only)
and reports every validation outcome to the audit collaborator.

Security Note:
    Never log submitted codes or secrets. Only user ids and outcomes.
"""
import socket
import logging
import threading
from typing import Optional
from urllib.parse import quote

from ..audit import AuditLogger, SecurityEvent
from ..models import SetupResult
from ..utils import Clock, utcnow
from ..vault.secret_store import SecretStore
from . import base32
from .engine import DEFAULT_DIGITS, DEFAULT_STEP, TimeCode

logger = logging.getLogger("rootguard.totp")


def provisioning_uri(secret: str, account: str, issuer: str) -> str:
    """Build the ``otpauth://`` URI consumed by authenticator apps."""
    return (
        f"otpauth://totp/{quote(account, safe='')}"
        f"?secret={secret}&issuer={quote(issuer, safe='')}"
    )


class TotpValidator:
    """Validate one-time codes for users whose secrets live in a SecretStore.

    Args:
        store: Persistent secret table.
        audit: Audit emitter.
        step: Time-step size in seconds.
        digits: Code length.
        replay_protection: Reject a code whose time step is not newer
            than the last one accepted for the same user.
        clock: Callable returning the current aware UTC datetime.
        hostname: Host part of the account label (defaults to this host).
    """

    def __init__(
        self,
        store: SecretStore,
        audit: Optional[AuditLogger] = None,
        step: int = DEFAULT_STEP,
        digits: int = DEFAULT_DIGITS,
        replay_protection: bool = False,
        clock: Optional[Clock] = None,
        hostname: Optional[str] = None,
    ):
        self._store = store
        self._audit = audit or AuditLogger()
        self.step = step
        self.digits = digits
        self.replay_protection = replay_protection
        self._clock = clock or utcnow
        self._hostname = hostname or socket.gethostname()
        self._watermarks: dict[str, int] = {}
        self._watermark_lock = threading.Lock()

    def account_label(self, user_id: str) -> str:
        return f"{user_id}@{self._hostname}"

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def setup_secret(self, user_id: str, issuer: str) -> SetupResult:
        """Generate and store a new secret for a user without one.

        Returns:
            SetupResult with the Base32 secret and provisioning URI, or a
            failure result if the user is already configured.
        """
        secret = base32.random_secret()
        try:
            stored = self._store.store_secret_if_absent(user_id, secret)
        except OSError as err:
            logger.error("Error setting up TOTP for user %s: %s", user_id, err)
            return SetupResult(
                success=False, message="Failed to setup TOTP authentication",
            )
        if not stored:
            logger.warning("TOTP already configured for user: %s", user_id)
            return SetupResult(
                success=False,
                message=f"TOTP is already configured for user {user_id}",
            )
        account = self.account_label(user_id)
        with self._watermark_lock:
            self._watermarks.pop(user_id, None)
        logger.info("TOTP setup completed for user: %s", user_id)
        self._audit.log_security_event(
            SecurityEvent.TOTP_SETUP, user_id, "TOTP authentication configured",
        )
        return SetupResult(
            success=True,
            message=f"TOTP setup completed for {account} ({issuer})",
            secret=secret,
            provisioning_uri=provisioning_uri(secret, account, issuer),
            account=account,
            issuer=issuer,
        )

    def reset_secret(self, user_id: str, issuer: str) -> SetupResult:
        """Replace an existing secret with a new one."""
        removed = self.remove_secret(user_id)
        if removed:
            logger.info("Reset TOTP secret for user: %s", user_id)
        return self.setup_secret(user_id, issuer)

    def remove_secret(self, user_id: str) -> bool:
        with self._watermark_lock:
            self._watermarks.pop(user_id, None)
        try:
            return self._store.remove_secret(user_id)
        except OSError as err:
            logger.error("Error removing TOTP secret for user %s: %s", user_id, err)
            return False

    def has_secret(self, user_id: str) -> bool:
        try:
            return self._store.has_secret(user_id)
        except OSError as err:
            logger.error("Error checking TOTP setup for user %s: %s", user_id, err)
            return False

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _fail(self, user_id: str, details: str) -> bool:
        logger.warning("TOTP validation failed for user: %s", user_id)
        self._audit.log_security_event(
            SecurityEvent.TOTP_VALIDATION_FAILURE, user_id, details,
        )
        return False

    def _accept_counter(self, user_id: str, counter: int) -> bool:
        with self._watermark_lock:
            last = self._watermarks.get(user_id)
            if last is not None and counter <= last:
                return False
            self._watermarks[user_id] = counter
            return True

    def validate_code(self, user_id: str, code: str) -> bool:
        """Check ``code`` against the user's secret at the current time.

        Never raises; every outcome is reported to the audit emitter.
        """
        try:
            secret = self._store.get_secret(user_id)
            if not secret:
                logger.warning("No TOTP secret found for user: %s", user_id)
                return self._fail(user_id, "No TOTP secret configured")
            engine = TimeCode(secret, step=self.step, digits=self.digits)
            counter = engine.match(code, self._clock())
            if counter is None:
                return self._fail(user_id, "Invalid TOTP code provided")
            if self.replay_protection and not self._accept_counter(user_id, counter):
                return self._fail(user_id, "TOTP code already used")
        except Exception as err:
            logger.error("Error validating TOTP for user %s: %s", user_id, err)
            self._audit.log_security_event(
                SecurityEvent.SECURITY_VIOLATION, user_id,
                f"TOTP validation error: {type(err).__name__}",
            )
            return False
        logger.info("TOTP validation successful for user: %s", user_id)
        self._audit.log_security_event(
            SecurityEvent.TOTP_VALIDATION_SUCCESS, user_id,
            "TOTP code validated successfully",
        )
        return True
