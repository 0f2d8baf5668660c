"""
SessionManager — Time-limited sessions minted by a successful TOTP check.

Session lifecycle:
    Created  -> create_session() after the code validates
    Active   -> validate_session() refreshes last_activity_at
    Expired  -> observed by validate_session() or the sweeper, terminated
    Terminated -> removed from the table, vault token wiped

Security Note:
    Session ids are 256-bit random tokens. Never log vault token payloads.
"""
import logging
import threading
from typing import Optional

from ..audit import AuditLogger, SecurityEvent, SessionEvent
from ..exceptions import EncryptionError, VaultClosedError
from ..models import Session, SessionResult
from ..scheduler import PeriodicJob
from ..table import ConcurrentTable
from ..totp.validator import TotpValidator
from ..utils import Clock, Duration, as_timedelta, random_token, utcnow
from ..vault.ephemeral import EphemeralVault

logger = logging.getLogger("rootguard.session")

_SESSION_ID_BYTES = 32
DEFAULT_SWEEP_INTERVAL = 60.0  # one minute


class SessionManager:
    """Concurrent table of active sessions.

    Args:
        validator: Checks submitted codes against stored secrets.
        vault: Ephemeral vault receiving one protected token per session.
        audit: Audit emitter.
        sweep_interval: Seconds between background expiry sweeps.
        table: Concurrent table holding sessions (a fresh one by default).
        clock: Callable returning the current aware UTC datetime.
        autostart: Start the background sweeper immediately.
    """

    def __init__(
        self,
        validator: TotpValidator,
        vault: EphemeralVault,
        audit: Optional[AuditLogger] = None,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        table: Optional[ConcurrentTable[str, Session]] = None,
        clock: Optional[Clock] = None,
        autostart: bool = True,
    ):
        self._validator = validator
        self._vault = vault
        self._audit = audit or AuditLogger()
        self._sessions: ConcurrentTable[str, Session] = (
            table if table is not None else ConcurrentTable()
        )
        self._clock = clock or utcnow
        self._closed = False
        self._close_lock = threading.Lock()
        self._sweeper = PeriodicJob("session-sweep", sweep_interval, self.sweep_expired)
        if autostart:
            self._sweeper.start()

    def __len__(self) -> int:
        return len(self._sessions)

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, *exc) -> None:
        self.teardown()

    def start(self) -> None:
        """Start the background sweeper if it is not running."""
        if not self._closed:
            self._sweeper.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_session(
        self, user_id: str, code: str, timeout: Duration
    ) -> SessionResult:
        """Validate ``code`` for ``user_id`` and open a session.

        Args:
            user_id: User presenting the code.
            code: Submitted one-time code.
            timeout: Absolute session lifetime (timedelta or seconds).

        Returns:
            SessionResult carrying the session id and expiry on success.
        """
        if self._closed:
            return SessionResult(success=False, message="Session manager is closed")
        try:
            lifetime = as_timedelta(timeout)
        except TypeError as err:
            return SessionResult(success=False, message=str(err))
        if lifetime.total_seconds() < 0:
            return SessionResult(success=False, message="Session timeout must not be negative")

        logger.info("Creating session for user: %s", user_id)
        if not self._validator.validate_code(user_id, code):
            logger.warning("Invalid TOTP code for user: %s", user_id)
            self._audit.log_security_event(
                SecurityEvent.TOTP_VALIDATION_FAILURE, user_id,
                "Invalid TOTP during session creation",
            )
            return SessionResult(success=False, message="Invalid TOTP code")

        now = self._clock()
        while True:
            session_id = random_token(_SESSION_ID_BYTES)
            token = f"{session_id}:{user_id}:{now.timestamp()}".encode("utf-8")
            try:
                token_id = self._vault.put(token, lifetime)
            except (VaultClosedError, EncryptionError) as err:
                logger.error("Error creating session for user %s: %s", user_id, err)
                return SessionResult(
                    success=False, message="Internal error during session creation",
                )
            session = Session(
                session_id=session_id,
                user_id=user_id,
                started_at=now,
                expires_at=now + lifetime,
                last_activity_at=now,
                token_id=token_id,
            )
            if self._sessions.insert(session_id, session):
                break
            self._vault.delete(token_id)

        logger.info(
            "Session created: %s for user: %s, expires: %s",
            session.session_id, user_id, session.expires_at,
        )
        self._audit.log_session_event(
            session.session_id, SessionEvent.CREATED,
            f"Session created for user {user_id}, timeout: {lifetime}",
        )
        return SessionResult(
            success=True,
            session_id=session.session_id,
            expires_at=session.expires_at,
            message=(
                "Session created successfully. Expires at: "
                f"{session.expires_at:%Y-%m-%d %H:%M:%S}"
            ),
        )

    def validate_session(self, session_id: str) -> bool:
        """Return whether the session is live, refreshing its activity time.

        An expired session is terminated as a side effect.
        """
        expired = False

        def _touch(session: Session) -> bool:
            nonlocal expired
            now = self._clock()
            if session.is_expired(now):
                expired = True
                return True  # leave removal to terminate_session
            session.last_activity_at = now
            return True

        session = self._sessions.update(session_id, _touch)
        if session is None:
            logger.warning("Session validation failed - session not found: %s", session_id)
            return False
        if expired:
            logger.info("Session validation failed - session expired: %s", session_id)
            self._expire(session)
            return False
        self._audit.log_session_event(
            session_id, SessionEvent.VALIDATED,
            f"Session validated for user {session.user_id}",
        )
        return True

    def terminate_session(self, session_id: str) -> bool:
        """Remove a session and wipe its vault token.

        Returns:
            True if the session existed.
        """
        session = self._sessions.pop(session_id)
        if session is None:
            return False
        self._release(session)
        logger.info(
            "Session terminated: %s for user: %s", session_id, session.user_id,
        )
        self._audit.log_session_event(
            session_id, SessionEvent.TERMINATED,
            f"Session terminated for user {session.user_id}",
        )
        return True

    def get_session(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy() if session is not None else None

    def list_active(self) -> list[Session]:
        """Snapshot of sessions that have not expired yet."""
        now = self._clock()
        return [
            s.model_copy() for s in self._sessions.values() if not s.is_expired(now)
        ]

    def sweep_expired(self) -> int:
        """Terminate every expired session. Returns how many were removed."""
        now = self._clock()
        removed = 0
        for session in self._sessions.values():
            if session.is_expired(now) and self._expire(session):
                removed += 1
        if removed:
            logger.info("Cleaned up %d expired sessions", removed)
        return removed

    def terminate_all(self) -> int:
        count = 0
        for session_id in self._sessions.keys():
            if self.terminate_session(session_id):
                count += 1
        return count

    def teardown(self) -> None:
        """Stop the sweeper and terminate every live session."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._sweeper.stop()
        count = self.terminate_all()
        logger.info("Session manager torn down (%d sessions terminated)", count)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release(self, session: Session) -> None:
        if session.token_id is not None:
            self._vault.delete(session.token_id)

    def _expire(self, session: Session) -> bool:
        if not self.terminate_session(session.session_id):
            return False
        self._audit.log_session_event(
            session.session_id, SessionEvent.EXPIRED,
            f"Session expired for user {session.user_id}",
        )
        return True
