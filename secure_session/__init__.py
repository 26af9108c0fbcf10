"""Stateless, encrypted, self-expiring sessions carried in cookies."""

from secure_session.core.exceptions import (
    ConfigurationError,
    InvalidPayloadError,
    KeyFileNotFoundError,
    SessionError,
    SessionNotFoundError,
)
from secure_session.session.manager import OutboundCookie, SecureSession
from secure_session.session.options import CookieOptions, SessionConfig
from secure_session.session.store import SessionRecord

__all__ = [
    'ConfigurationError',
    'CookieOptions',
    'InvalidPayloadError',
    'KeyFileNotFoundError',
    'OutboundCookie',
    'SecureSession',
    'SessionConfig',
    'SessionError',
    'SessionNotFoundError',
    'SessionRecord',
]
