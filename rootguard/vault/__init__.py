"""RootGuard Vault — Encrypted storage for TOTP secrets and short-lived data.

Security Note (Threat Model):
    The secret store key sits next to the data file, protected only by
    filesystem permissions. The ephemeral vault key lives in process
    memory until teardown. A memory dump of a running process can expose
    both; mitigation requires an HSM or OS keyring and is out of scope.
"""

from .crypto import EncryptedRecord, encrypt, decrypt, generate_key, zeroize
from .secret_store import SecretStore
from .ephemeral import EphemeralVault, EphemeralEntry

__all__ = [
    "EncryptedRecord",
    "encrypt",
    "decrypt",
    "generate_key",
    "zeroize",
    "SecretStore",
    "EphemeralVault",
    "EphemeralEntry",
]
