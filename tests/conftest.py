"""
Global test configuration and fixtures for secure_session

Provides session configs for each key mode, temporary key files and a
controllable clock for expiry tests.
"""

from datetime import timedelta
from pathlib import Path

import pytest

from secure_session.core.utils.encryption import MIN_KDF_ITERATIONS
from secure_session.session import codec
from secure_session.session.options import CookieOptions, SessionConfig

TEST_SECRET = "0123456789abcdef"
TEST_SALT = "fedcba9876543210"


# ============================================================================
# Clock
# ============================================================================

class FrozenClock:
    """Stand-in for codec.now_millis that only moves when told to."""

    def __init__(self, start_millis: int = 1_700_000_000_000):
        self.millis = start_millis

    def __call__(self) -> int:
        return self.millis

    def advance(self, delta: timedelta) -> None:
        self.millis += delta // timedelta(milliseconds=1)


@pytest.fixture(scope="function")
def frozen_clock(monkeypatch):
    """Freeze the codec clock for the duration of a test"""
    clock = FrozenClock()
    monkeypatch.setattr(codec, "now_millis", clock)
    return clock


# ============================================================================
# Session Config Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def salted_config():
    """Secret + salt session, key derived with PBKDF2"""
    return SessionConfig(
        name="session",
        secret=TEST_SECRET,
        salt=TEST_SALT,
        expiry=timedelta(hours=1),
        kdf_iterations=MIN_KDF_ITERATIONS,
    )


@pytest.fixture(scope="session")
def raw_config():
    """Raw 16-byte secret session with random nonces"""
    return SessionConfig(
        name="raw",
        secret=TEST_SECRET,
        expiry=timedelta(hours=1),
    )


@pytest.fixture(scope="function")
def key_file(tmp_path) -> Path:
    """Key file holding a 64 character key"""
    path = tmp_path / "session.key"
    path.write_text("k" * 32 + "e" * 16 + "y" * 16)
    return path


@pytest.fixture(scope="function")
def key_file_config(key_file):
    """Session keyed from a file, with a custom cookie name and attributes"""
    return SessionConfig(
        name="auth",
        cookie_name="__auth",
        key_path=key_file,
        expiry=timedelta(minutes=30),
        cookie_options=CookieOptions(path="/app", secure=True, same_site="strict"),
    )


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Add markers based on file location"""
    for item in items:
        path = str(item.fspath)
        if "security" in path:
            item.add_marker(pytest.mark.security)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
