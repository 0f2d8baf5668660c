"""Tests for the time-code engine."""
from datetime import datetime, timedelta, timezone

import pytest

from rootguard.exceptions import ConstructionError
from rootguard.totp import base32
from rootguard.totp.engine import TimeCode, current_code, validate

RFC_SECRET = b"12345678901234567890"


def _other_code(engine: TimeCode, when) -> str:
    """A code that matches none of the accepted windows at ``when``."""
    taken = {
        engine.current_code(when - timedelta(seconds=engine.step)),
        engine.current_code(when),
        engine.current_code(when + timedelta(seconds=engine.step)),
    }
    candidate = 0
    while f"{candidate:06d}" in taken:
        candidate += 1
    return f"{candidate:06d}"


class TestConstruction:

    @pytest.mark.parametrize("secret", [b"", "", None, "!!!!"])
    def test_empty_secret_rejected(self, secret):
        with pytest.raises(ConstructionError):
            TimeCode(secret)

    def test_invalid_step_rejected(self):
        with pytest.raises(ConstructionError):
            TimeCode(RFC_SECRET, step=0)

    @pytest.mark.parametrize("digits", [4, 11])
    def test_invalid_digits_rejected(self, digits):
        with pytest.raises(ConstructionError):
            TimeCode(RFC_SECRET, digits=digits)

    def test_base32_secret_accepted(self):
        engine = TimeCode(base32.encode(RFC_SECRET))
        assert engine.code(0) == TimeCode(RFC_SECRET).code(0)


class TestHotp:
    """RFC 4226 appendix D."""

    @pytest.mark.parametrize("counter,expected", list(enumerate([
        "755224", "287082", "359152", "969429", "338314",
        "254676", "287922", "162583", "399871", "520489",
    ])))
    def test_rfc4226_vectors(self, counter, expected):
        assert TimeCode(RFC_SECRET).code(counter) == expected


class TestTotp:
    """RFC 6238 appendix B (SHA-1)."""

    @pytest.mark.parametrize("seconds,expected", [
        (59, "94287082"),
        (1111111109, "07081804"),
        (1111111111, "14050471"),
        (1234567890, "89005924"),
        (2000000000, "69279037"),
        (20000000000, "65353130"),
    ])
    def test_rfc6238_vectors(self, seconds, expected):
        engine = TimeCode(RFC_SECRET, digits=8)
        assert engine.current_code(seconds) == expected
        when = datetime.fromtimestamp(seconds, tz=timezone.utc)
        assert engine.current_code(when) == expected

    def test_counter_for(self):
        engine = TimeCode(RFC_SECRET)
        assert engine.counter_for(0) == 0
        assert engine.counter_for(29) == 0
        assert engine.counter_for(30) == 1
        assert engine.counter_for(1111111109) == 37037036

    def test_naive_datetime_is_utc(self):
        engine = TimeCode(RFC_SECRET)
        naive = datetime(2009, 2, 13, 23, 31, 30)
        aware = naive.replace(tzinfo=timezone.utc)
        assert engine.current_code(naive) == engine.current_code(aware)

    def test_zero_padding(self):
        assert TimeCode(RFC_SECRET, digits=8).current_code(1111111109).startswith("0")


class TestValidate:

    when = datetime(2024, 5, 1, 12, 0, 10, tzinfo=timezone.utc)

    def test_current_code_valid(self):
        engine = TimeCode(RFC_SECRET)
        assert engine.validate(engine.current_code(self.when), self.when)

    @pytest.mark.parametrize("shift", [-30, 30])
    def test_adjacent_windows_valid(self, shift):
        engine = TimeCode(RFC_SECRET)
        code = engine.current_code(self.when + timedelta(seconds=shift))
        assert engine.validate(code, self.when)

    @pytest.mark.parametrize("shift", [-60, 60, 90])
    def test_distant_windows_invalid(self, shift):
        engine = TimeCode(RFC_SECRET)
        code = engine.current_code(self.when + timedelta(seconds=shift))
        if code in {
            engine.current_code(self.when + timedelta(seconds=s)) for s in (-30, 0, 30)
        }:
            pytest.skip("code collision across windows")
        assert not engine.validate(code, self.when)

    def test_wrong_code_invalid(self):
        engine = TimeCode(RFC_SECRET)
        assert not engine.validate(_other_code(engine, self.when), self.when)

    def test_match_returns_counter(self):
        engine = TimeCode(RFC_SECRET)
        code = engine.current_code(self.when)
        assert engine.match(code, self.when) == engine.counter_for(self.when)

    @pytest.mark.parametrize("submitted", ["", "12345", "1234567", None, 123456])
    def test_malformed_submissions(self, submitted):
        assert not TimeCode(RFC_SECRET).validate(submitted, self.when)

    def test_whitespace_not_stripped(self):
        engine = TimeCode(RFC_SECRET)
        assert not engine.validate(f" {engine.current_code(self.when)}", self.when)

    @pytest.mark.parametrize("seconds", [0, 5, 29])
    def test_first_step_after_epoch(self, seconds):
        engine = TimeCode(RFC_SECRET)
        code = engine.current_code(seconds)
        assert engine.match(code, seconds) == 0
        assert validate(RFC_SECRET, code, seconds)

    def test_next_step_code_at_epoch(self):
        engine = TimeCode(RFC_SECRET)
        assert engine.match(engine.code(1), 5) == 1

    def test_negative_counter_rejected(self):
        with pytest.raises(ValueError):
            TimeCode(RFC_SECRET).code(-1)

    def test_module_helpers(self):
        code = current_code(RFC_SECRET, self.when)
        assert validate(RFC_SECRET, code, self.when)
        assert validate(base32.encode(RFC_SECRET), code, self.when)

    def test_defaults_to_now(self):
        engine = TimeCode(RFC_SECRET)
        assert engine.validate(engine.current_code())
