"""
RootGuard — Facade over the core components.

Owns the secret store, validator, ephemeral vault and session manager,
wires them from a :class:`~rootguard.conf.GuardConfig`, and tears them
down in order (sessions first, then the vault) on close or process exit.
"""
import weakref
import logging
from typing import Optional

from .audit import AuditLogger
from .conf import GuardConfig
from .models import Session, SessionResult, SetupResult
from .session.manager import SessionManager
from .totp.validator import TotpValidator
from .utils import Clock, Duration
from .vault.ephemeral import EphemeralVault
from .vault.secret_store import SecretStore

logger = logging.getLogger("rootguard")


def _shutdown(sessions: SessionManager, vault: EphemeralVault) -> None:
    sessions.teardown()
    vault.teardown()
    logger.info("RootGuard shut down")


class RootGuard:
    """Core operations consumed by the command-line layer.

    Args:
        config: Validated settings; read from the environment if omitted.
        audit: Audit emitter shared by every component.
        clock: Callable returning the current aware UTC datetime.
        autostart: Start the background sweepers immediately.
    """

    def __init__(
        self,
        config: Optional[GuardConfig] = None,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        autostart: bool = True,
    ):
        self.config = config or GuardConfig.from_env()
        self.audit = audit or AuditLogger()
        self.store = SecretStore(
            self.config.storage_dir,
            audit=self.audit,
            secrets_file=self.config.secrets_file,
            key_file=self.config.key_file,
        )
        self.validator = TotpValidator(
            self.store,
            audit=self.audit,
            step=self.config.totp_step,
            digits=self.config.totp_digits,
            replay_protection=self.config.replay_protection,
            clock=clock,
        )
        self.vault = EphemeralVault(
            sweep_interval=self.config.vault_sweep_interval,
            audit=self.audit,
            clock=clock,
            autostart=autostart,
        )
        self.sessions = SessionManager(
            self.validator,
            self.vault,
            audit=self.audit,
            sweep_interval=self.config.session_sweep_interval,
            clock=clock,
            autostart=autostart,
        )
        # runs on close(), garbage collection or interpreter exit, once
        self._finalizer = weakref.finalize(
            self, _shutdown, self.sessions, self.vault,
        )

    def __enter__(self) -> "RootGuard":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def setup_secret(self, user_id: str, issuer: Optional[str] = None) -> SetupResult:
        return self.validator.setup_secret(user_id, issuer or self.config.issuer)

    def reset_secret(self, user_id: str, issuer: Optional[str] = None) -> SetupResult:
        return self.validator.reset_secret(user_id, issuer or self.config.issuer)

    def has_secret(self, user_id: str) -> bool:
        return self.validator.has_secret(user_id)

    def remove_secret(self, user_id: str) -> bool:
        return self.validator.remove_secret(user_id)

    def validate_code(self, user_id: str, code: str) -> bool:
        return self.validator.validate_code(user_id, code)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(
        self, user_id: str, code: str, timeout: Optional[Duration] = None
    ) -> SessionResult:
        if timeout is None:
            timeout = self.config.default_session_timeout
        return self.sessions.create_session(user_id, code, timeout)

    def validate_session(self, session_id: str) -> bool:
        return self.sessions.validate_session(session_id)

    def terminate_session(self, session_id: str) -> bool:
        return self.sessions.terminate_session(session_id)

    def list_active_sessions(self) -> list[Session]:
        return self.sessions.list_active()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Terminate all sessions, then wipe the ephemeral vault."""
        self._finalizer()

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive
