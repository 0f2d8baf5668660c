"""Shared fixtures for RootGuard tests."""
from datetime import datetime, timedelta, timezone

import pytest

from rootguard.audit import AuditLogger
from rootguard.session.manager import SessionManager
from rootguard.totp.validator import TotpValidator
from rootguard.vault.ephemeral import EphemeralVault
from rootguard.vault.secret_store import SecretStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 10, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    """Audit events captured by the audit fixture."""
    return []


@pytest.fixture
def audit(events):
    return AuditLogger(sink=events.append, hostname="testhost")


@pytest.fixture
def store(tmp_path, audit):
    return SecretStore(tmp_path / "guard", audit=audit)


@pytest.fixture
def validator(store, audit, clock):
    return TotpValidator(store, audit=audit, clock=clock, hostname="testhost")


@pytest.fixture
def vault(audit, clock):
    v = EphemeralVault(audit=audit, clock=clock, autostart=False)
    yield v
    v.teardown()


@pytest.fixture
def manager(validator, vault, audit, clock):
    m = SessionManager(validator, vault, audit=audit, clock=clock, autostart=False)
    yield m
    m.teardown()


def event_types(events: list[dict]) -> list[str]:
    return [e["event_type"] for e in events]
