"""
RootGuard Configuration — Validated settings for the core components.

Reads optional overrides from environment variables:
    ROOTGUARD_STORAGE_DIR = <directory holding the secret store and key file>
    ROOTGUARD_TOTP_STEP = <seconds per time step>
    ROOTGUARD_TOTP_DIGITS = <code length>
    ROOTGUARD_VAULT_SWEEP_INTERVAL = <seconds between vault sweeps>
    ROOTGUARD_SESSION_SWEEP_INTERVAL = <seconds between session sweeps>
    ROOTGUARD_SESSION_TIMEOUT = <default session lifetime in seconds>
    ROOTGUARD_REPLAY_PROTECTION = <true|false>
    ROOTGUARD_ISSUER = <issuer shown by authenticator apps>

Security Note:
    Never log key material. Only log paths and numeric settings.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("rootguard.conf")

DEFAULT_STORAGE_DIR = Path.home() / ".rootguard"
SECRETS_FILE = "totp_secrets.encrypted"
KEY_FILE = "storage.key"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"ROOTGUARD_{name}", default)


class GuardConfig(BaseModel):
    """Validated RootGuard configuration."""

    storage_dir: Path = Field(default=DEFAULT_STORAGE_DIR)
    secrets_file: str = Field(default=SECRETS_FILE)
    key_file: str = Field(default=KEY_FILE)
    totp_step: int = Field(default=30, ge=1)
    totp_digits: int = Field(default=6, ge=6, le=10)
    vault_sweep_interval: float = Field(default=300.0, gt=0)
    session_sweep_interval: float = Field(default=60.0, gt=0)
    default_session_timeout: float = Field(default=900.0, ge=0)
    replay_protection: bool = False
    issuer: str = Field(default="RootGuard", min_length=1)

    @field_validator("secrets_file", "key_file")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """File names must stay inside storage_dir."""
        if not v or os.sep in v or v in (".", ".."):
            raise ValueError(f"Invalid file name: {v!r}")
        return v

    @field_validator("storage_dir")
    @classmethod
    def expand_storage_dir(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @property
    def secrets_path(self) -> Path:
        return self.storage_dir / self.secrets_file

    @property
    def key_path(self) -> Path:
        return self.storage_dir / self.key_file

    @classmethod
    def from_env(cls) -> "GuardConfig":
        """Create GuardConfig from ROOTGUARD_* environment variables.

        Unset variables fall back to the field defaults.

        Returns:
            Populated GuardConfig instance.
        """
        values: dict = {}
        mapping = {
            "STORAGE_DIR": "storage_dir",
            "TOTP_STEP": "totp_step",
            "TOTP_DIGITS": "totp_digits",
            "VAULT_SWEEP_INTERVAL": "vault_sweep_interval",
            "SESSION_SWEEP_INTERVAL": "session_sweep_interval",
            "SESSION_TIMEOUT": "default_session_timeout",
            "ISSUER": "issuer",
        }
        for env_name, field in mapping.items():
            raw = _env(env_name)
            if raw is not None:
                values[field] = raw
        replay = _env("REPLAY_PROTECTION")
        if replay is not None:
            values["replay_protection"] = replay.strip().lower() in _TRUE_VALUES
        config = cls(**values)
        logger.debug(
            "Loaded configuration: storage_dir=%s step=%d digits=%d",
            config.storage_dir, config.totp_step, config.totp_digits,
        )
        return config
