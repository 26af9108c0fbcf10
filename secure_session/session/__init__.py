"""Session options, token codec, record store and manager."""

from .codec import decode, encode, open_token
from .manager import SecureSession
from .options import CookieOptions, SessionConfig

__all__ = [
    'CookieOptions',
    'SecureSession',
    'SessionConfig',
    'decode',
    'encode',
    'open_token',
]
