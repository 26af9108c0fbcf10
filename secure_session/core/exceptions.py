"""
Exception hierarchy for secure sessions.

Only configuration and programming mistakes raise. Problems with attacker
controlled input (malformed, tampered or expired tokens) never raise: the codec
returns None for them instead.
"""


class SessionError(Exception):
    """Base class for every error raised by this package."""
    pass


class ConfigurationError(SessionError, ValueError):
    """Raised when a session is configured or used incorrectly."""
    pass


class KeyFileNotFoundError(ConfigurationError, FileNotFoundError):
    """Raised when the configured key file does not exist."""

    def __init__(self, key_path: str):
        super().__init__(f"Key file does not exist: {key_path}")
        self.key_path = key_path


class SessionNotFoundError(ConfigurationError, LookupError):
    """Raised when an operation names a session that is not configured."""

    def __init__(self, session_name: str):
        super().__init__(f"Session not found: {session_name!r}")
        self.session_name = session_name


class InvalidPayloadError(ConfigurationError):
    """Raised when a value cannot be written to a session."""
    pass
