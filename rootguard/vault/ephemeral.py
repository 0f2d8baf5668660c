"""
EphemeralVault — In-process encrypted blob store with per-entry expiry.

The encryption key is generated when the vault is created and never
leaves the process. :meth:`EphemeralVault.teardown` zeroes every stored
ciphertext and the key, so nothing survives a restart.

Security Note:
    Plaintext only exists while ``put``/``get`` run. Never log payloads.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..audit import AuditLogger
from ..exceptions import DecryptionError, VaultClosedError
from ..scheduler import PeriodicJob
from ..table import ConcurrentTable
from ..utils import Clock, Duration, as_timedelta, random_token, utcnow
from .crypto import EncryptedRecord, decrypt, encrypt, generate_key, zeroize

logger = logging.getLogger("rootguard.vault")

_ID_BYTES = 16
DEFAULT_SWEEP_INTERVAL = 300.0  # five minutes


@dataclass
class EphemeralEntry:
    id: str
    record: EncryptedRecord
    created_at: datetime
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class EphemeralVault:
    """Process-scoped encrypted key-value store with TTL.

    Args:
        sweep_interval: Seconds between background sweeps of expired entries.
        audit: Audit emitter for decryption problems.
        table: Concurrent table to hold entries (a fresh one by default).
        clock: Callable returning the current aware UTC datetime.
        autostart: Start the background sweeper immediately.
    """

    def __init__(
        self,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        audit: Optional[AuditLogger] = None,
        table: Optional[ConcurrentTable[str, EphemeralEntry]] = None,
        clock: Optional[Clock] = None,
        autostart: bool = True,
    ):
        self._table: ConcurrentTable[str, EphemeralEntry] = (
            table if table is not None else ConcurrentTable()
        )
        self._audit = audit or AuditLogger()
        self._clock = clock or utcnow
        self._key = generate_key()
        self._closed = False
        self._close_lock = threading.Lock()
        self._sweeper = PeriodicJob("vault-sweep", sweep_interval, self.sweep)
        if autostart:
            self._sweeper.start()

    def __len__(self) -> int:
        return len(self._table)

    def __enter__(self) -> "EphemeralVault":
        return self

    def __exit__(self, *exc) -> None:
        self.teardown()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the background sweeper if it is not running."""
        if not self._closed:
            self._sweeper.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def put(self, data: bytes, ttl: Optional[Duration] = None) -> str:
        """Encrypt ``data`` and store it.

        Args:
            data: Payload to protect.
            ttl: Lifetime of the entry; ``None`` keeps it until deleted.

        Returns:
            Opaque id of the new entry.

        Raises:
            VaultClosedError: If the vault was torn down.
        """
        if self._closed:
            raise VaultClosedError("ephemeral vault has been torn down")
        now = self._clock()
        expires_at = now + as_timedelta(ttl) if ttl is not None else None
        record = encrypt(self._key, data)
        while True:
            entry_id = random_token(_ID_BYTES)
            entry = EphemeralEntry(
                id=entry_id, record=record, created_at=now, expires_at=expires_at,
            )
            if self._table.insert(entry_id, entry):
                break
        logger.debug("Stored ephemeral entry id=%s expires=%s", entry_id, expires_at)
        return entry_id

    def get(self, entry_id: str) -> Optional[bytes]:
        """Decrypt and return the payload, or ``None`` if absent or expired."""
        if self._closed:
            return None
        # delete and teardown wipe under this stripe too
        with self._table.locked(entry_id):
            entry = self._table.get(entry_id)
            if entry is None:
                return None
            expired = entry.is_expired(self._clock())
            if not expired:
                try:
                    return decrypt(self._key, entry.record)
                except DecryptionError as err:
                    self._audit.log_system_event(
                        "EphemeralVault",
                        f"Failed to decrypt entry {entry_id}: {err}",
                        logging.ERROR,
                    )
                    return None
        logger.debug("Ephemeral entry expired: id=%s", entry_id)
        self.delete(entry_id)
        return None

    def delete(self, entry_id: str) -> bool:
        """Remove an entry and wipe its ciphertext.

        Returns:
            True if the entry existed.
        """
        entry = self._table.pop(entry_id)
        if entry is None:
            return False
        entry.record.wipe()
        logger.debug("Deleted ephemeral entry id=%s", entry_id)
        return True

    def sweep(self) -> int:
        """Delete every expired entry. Returns how many were removed."""
        now = self._clock()
        removed = 0
        for entry_id, entry in self._table.items():
            if not entry.is_expired(now):
                continue
            gone = self._table.pop_if(entry_id, lambda e: e.is_expired(now))
            if gone is not None:
                gone.record.wipe()
                removed += 1
        if removed:
            logger.info("Cleaned up %d expired vault entries", removed)
        return removed

    def teardown(self) -> None:
        """Stop sweeping, wipe all ciphertext and the process key."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._sweeper.stop()
        entries = self._table.drain()
        for entry_id, entry in entries:
            with self._table.locked(entry_id):
                entry.record.wipe()
        zeroize(self._key)
        logger.info("Ephemeral vault torn down (%d entries wiped)", len(entries))
