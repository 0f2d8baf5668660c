"""Tests for the session lifecycle manager."""
import threading
import time
from datetime import timedelta

import pytest

from rootguard.session.manager import SessionManager
from rootguard.totp.engine import TimeCode


@pytest.fixture
def alice_code(validator, clock):
    """Configure alice and return a callable giving her current code."""
    result = validator.setup_secret("alice", "Org")
    engine = TimeCode(result.secret)
    return lambda: engine.current_code(clock.now)


def _types(events):
    return [e["event_type"] for e in events]


class TestCreateSession:

    def test_success(self, manager, alice_code, clock, events):
        result = manager.create_session("alice", alice_code(), timedelta(minutes=1))
        assert result.success
        assert result.expires_at == clock.now + timedelta(minutes=1)
        assert len(result.session_id) >= 43
        assert "Session.Created" in _types(events)

    def test_seconds_timeout(self, manager, alice_code, clock):
        result = manager.create_session("alice", alice_code(), 90)
        assert result.expires_at == clock.now + timedelta(seconds=90)

    def test_invalid_code(self, manager, alice_code, events):
        code = alice_code()
        wrong = "000000" if code != "000000" else "111111"
        result = manager.create_session("alice", wrong, 60)
        assert not result.success
        assert result.session_id is None
        assert result.message == "Invalid TOTP code"
        assert len(manager) == 0
        assert "Security.TotpValidationFailure" in _types(events)

    def test_unknown_user(self, manager):
        result = manager.create_session("nobody", "123456", 60)
        assert not result
        assert len(manager) == 0

    def test_negative_timeout_rejected(self, manager, alice_code):
        result = manager.create_session("alice", alice_code(), -5)
        assert not result.success
        assert len(manager) == 0

    def test_registers_vault_token(self, manager, vault, alice_code):
        result = manager.create_session("alice", alice_code(), 60)
        session = manager._sessions.get(result.session_id)
        token = vault.get(session.token_id)
        assert token.startswith(f"{result.session_id}:alice:".encode())

    def test_concurrent_ids_unique(self, manager, alice_code):
        code = alice_code()
        ids = []
        lock = threading.Lock()

        def worker():
            for _ in range(10):
                result = manager.create_session("alice", code, 60)
                with lock:
                    ids.append(result.session_id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(ids) == 80
        assert None not in ids
        assert len(set(ids)) == 80


class TestValidateSession:

    def test_live_session(self, manager, alice_code, clock):
        result = manager.create_session("alice", alice_code(), 60)
        clock.advance(10)
        assert manager.validate_session(result.session_id) is True
        assert manager.get_session(result.session_id).last_activity_at == clock.now

    def test_unknown_session(self, manager):
        assert manager.validate_session("does-not-exist") is False

    def test_expired_session_terminated(self, manager, vault, alice_code, clock, events):
        result = manager.create_session("alice", alice_code(), 60)
        token_id = manager._sessions.get(result.session_id).token_id
        clock.advance(60)
        assert manager.validate_session(result.session_id) is False
        assert manager.get_session(result.session_id) is None
        assert vault.get(token_id) is None
        assert "Session.Expired" in _types(events)

    def test_expired_does_not_refresh_activity(self, manager, alice_code, clock):
        result = manager.create_session("alice", alice_code(), 60)
        session = manager._sessions.get(result.session_id)
        started = session.last_activity_at
        clock.advance(120)
        manager.validate_session(result.session_id)
        assert session.last_activity_at == started

    def test_zero_timeout(self, manager, alice_code):
        result = manager.create_session("alice", alice_code(), 0)
        assert result.success
        assert manager.validate_session(result.session_id) is False
        assert manager.list_active() == []

    def test_validation_does_not_extend_expiry(self, manager, alice_code, clock):
        result = manager.create_session("alice", alice_code(), 60)
        for _ in range(5):
            clock.advance(10)
            assert manager.validate_session(result.session_id)
        clock.advance(10)
        assert manager.validate_session(result.session_id) is False


class TestTerminateSession:

    def test_terminate(self, manager, vault, alice_code, events):
        result = manager.create_session("alice", alice_code(), 60)
        token_id = manager._sessions.get(result.session_id).token_id
        assert manager.terminate_session(result.session_id) is True
        assert manager.validate_session(result.session_id) is False
        assert vault.get(token_id) is None
        assert len(vault) == 0
        assert "Session.Terminated" in _types(events)

    def test_terminate_missing(self, manager):
        assert manager.terminate_session("missing") is False

    def test_terminate_twice(self, manager, alice_code):
        result = manager.create_session("alice", alice_code(), 60)
        assert manager.terminate_session(result.session_id)
        assert not manager.terminate_session(result.session_id)


class TestListActive:

    def test_lists_only_live(self, manager, alice_code, clock):
        short = manager.create_session("alice", alice_code(), 30)
        long = manager.create_session("alice", alice_code(), 300)
        clock.advance(31)
        active = manager.list_active()
        assert [s.session_id for s in active] == [long.session_id]

    def test_snapshot_is_copy(self, manager, alice_code):
        result = manager.create_session("alice", alice_code(), 60)
        snapshot = manager.list_active()[0]
        snapshot.user_id = "mallory"
        assert manager.get_session(result.session_id).user_id == "alice"


class TestSweep:

    def test_sweep_removes_expired(self, manager, vault, alice_code, clock, events):
        manager.create_session("alice", alice_code(), 30)
        keep = manager.create_session("alice", alice_code(), 300)
        clock.advance(31)
        assert manager.sweep_expired() == 1
        assert len(manager) == 1
        assert len(vault) == 1
        assert manager.get_session(keep.session_id) is not None
        assert _types(events).count("Session.Expired") == 1

    def test_sweep_empty(self, manager):
        assert manager.sweep_expired() == 0

    def test_background_sweep(self, validator, vault, audit, clock, alice_code):
        manager = SessionManager(
            validator, vault, audit=audit, clock=clock, sweep_interval=0.05,
        )
        try:
            manager.create_session("alice", alice_code(), 1)
            clock.advance(2)
            deadline = time.monotonic() + 2
            while len(manager) and time.monotonic() < deadline:
                time.sleep(0.02)
            assert len(manager) == 0
        finally:
            manager.teardown()


class TestTeardown:

    def test_teardown_terminates_all(self, validator, vault, audit, clock, alice_code):
        manager = SessionManager(validator, vault, audit=audit, clock=clock, autostart=False)
        ids = [manager.create_session("alice", alice_code(), 60).session_id for _ in range(3)]
        manager.teardown()
        assert len(manager) == 0
        assert len(vault) == 0
        assert not any(manager.validate_session(i) for i in ids)

    def test_create_after_teardown(self, validator, vault, audit, clock, alice_code):
        manager = SessionManager(validator, vault, audit=audit, clock=clock, autostart=False)
        manager.teardown()
        assert not manager.create_session("alice", alice_code(), 60).success
