"""
SecretStore — Encrypted-at-rest mapping from user id to Base32 TOTP secret.

The whole table lives in one file and is rewritten on every mutation:

    storage_dir/totp_secrets.encrypted   [iv 16B][AES-256-CBC(orjson table)]
    storage_dir/storage.key              [raw 32-byte key]

Security Note:
    A missing or unreadable key file makes any existing table unreadable;
    the store then behaves as empty. That path is reported as a warning
    system event instead of failing silently.
    Writes from other processes are not coordinated.
"""
import os
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional

import orjson

from ..audit import AuditLogger
from ..conf import KEY_FILE, SECRETS_FILE
from ..exceptions import DecryptionError, StorageCorruption
from .crypto import KEY_LENGTH, decrypt_bytes, encrypt_bytes, generate_key

logger = logging.getLogger("rootguard.vault")

_OWNER_ONLY = 0o600
_OWNER_DIR = 0o700


def _restrict(path: Path, mode: int) -> None:
    try:
        os.chmod(path, mode)
    except (NotImplementedError, OSError) as err:
        logger.debug("Could not restrict permissions on %s: %s", path, err)


class SecretStore:
    """Durable, encrypted user → secret table backed by a single file.

    Args:
        storage_dir: Directory holding the data and key files.
        audit: Audit emitter used to surface storage corruption.
        secrets_file: Data file name inside ``storage_dir``.
        key_file: Key file name inside ``storage_dir``.
    """

    def __init__(
        self,
        storage_dir: str | Path,
        audit: Optional[AuditLogger] = None,
        secrets_file: str = SECRETS_FILE,
        key_file: str = KEY_FILE,
    ):
        self._dir = Path(storage_dir).expanduser()
        self._dir.mkdir(parents=True, exist_ok=True)
        _restrict(self._dir, _OWNER_DIR)
        self._path = self._dir / secrets_file
        self._key_path = self._dir / key_file
        self._audit = audit or AuditLogger()
        self._lock = threading.Lock()
        self._key = self._load_or_create_key()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def key_path(self) -> Path:
        return self._key_path

    # ------------------------------------------------------------------
    # Key file
    # ------------------------------------------------------------------

    def _load_or_create_key(self) -> bytes:
        if self._key_path.exists():
            key = self._key_path.read_bytes()
            if len(key) == KEY_LENGTH:
                return key
            self._audit.log_system_event(
                "SecretStore",
                f"Key file {self._key_path} has invalid length {len(key)}; "
                "generating a new key, existing secrets become unreadable",
                logging.WARNING,
            )
        elif self._path.exists():
            self._audit.log_system_event(
                "SecretStore",
                f"Key file {self._key_path} is missing but {self._path} exists; "
                "generating a new key, existing secrets become unreadable",
                logging.WARNING,
            )
        key = bytes(generate_key())
        self._write_file(self._key_path, key)
        logger.info("Generated new secret store key at %s", self._key_path)
        return key

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _write_file(self, path: Path, data: bytes) -> None:
        """Write ``data`` to a temp file in the same directory, then replace."""
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            _restrict(Path(tmp), _OWNER_ONLY)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        _restrict(path, _OWNER_ONLY)

    def _decode(self, raw: bytes) -> dict[str, str]:
        try:
            table = orjson.loads(decrypt_bytes(self._key, raw))
        except (DecryptionError, orjson.JSONDecodeError, UnicodeDecodeError) as err:
            raise StorageCorruption(str(err)) from err
        if not isinstance(table, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in table.items()
        ):
            raise StorageCorruption("secret table has an unexpected shape")
        return table

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        raw = self._path.read_bytes()
        try:
            return self._decode(raw)
        except StorageCorruption as err:
            logger.warning("Secret store %s is unreadable: %s", self._path, err)
            self._audit.log_system_event(
                "SecretStore",
                f"Secret store {self._path} could not be decrypted ({err}); "
                "treating it as empty",
                logging.WARNING,
            )
            return {}

    def _save(self, table: dict[str, str]) -> None:
        self._write_file(self._path, encrypt_bytes(self._key, orjson.dumps(table)))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def store_secret(self, user_id: str, secret: str) -> None:
        """Insert or replace the secret for ``user_id``."""
        with self._lock:
            table = self._load()
            table[user_id] = secret
            self._save(table)
        logger.debug("Stored secret for user=%s", user_id)

    def store_secret_if_absent(self, user_id: str, secret: str) -> bool:
        """Store ``secret`` only if ``user_id`` has none yet.

        Returns:
            True if the secret was written.
        """
        with self._lock:
            table = self._load()
            if table.get(user_id):
                return False
            table[user_id] = secret
            self._save(table)
        logger.debug("Stored secret for user=%s", user_id)
        return True

    def get_secret(self, user_id: str) -> Optional[str]:
        return self._load().get(user_id)

    def has_secret(self, user_id: str) -> bool:
        return bool(self.get_secret(user_id))

    def remove_secret(self, user_id: str) -> bool:
        """Delete the secret for ``user_id``.

        Returns:
            True if a secret existed.
        """
        with self._lock:
            table = self._load()
            if table.pop(user_id, None) is None:
                return False
            self._save(table)
        logger.debug("Removed secret for user=%s", user_id)
        return True

    def users(self) -> list[str]:
        return sorted(self._load().keys())
