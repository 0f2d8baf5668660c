"""RootGuard exceptions.

Only construction-time and crypto-layer problems are raised as exceptions.
Code validation failures, unknown sessions and expired sessions are plain
negative results and never surface here.
"""


class GuardError(Exception):
    """Base class for all RootGuard errors."""


class ConstructionError(GuardError, ValueError):
    """A component was built without usable key material or parameters."""


class EncryptionError(GuardError):
    """Encrypting a payload failed."""


class DecryptionError(EncryptionError):
    """A record could not be decrypted (wrong key, bad IV, bad padding)."""


class StorageCorruption(DecryptionError):
    """The persistent secret table could not be decoded."""


class VaultClosedError(GuardError):
    """The ephemeral vault was used after teardown."""
