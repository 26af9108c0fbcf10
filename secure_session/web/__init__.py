"""HTTP integration for FastAPI and Starlette applications."""

from .middleware import SecureSessionMiddleware, get_secure_session

__all__ = ['SecureSessionMiddleware', 'get_secure_session']
