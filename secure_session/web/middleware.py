"""
Starlette/FastAPI integration.

SecureSessionMiddleware gives every request its own SecureSession built from
configs shared by the whole application, and writes the session cookies back
on the response.
"""

import logging
from typing import Optional, Sequence, Union

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from secure_session.core.exceptions import ConfigurationError
from secure_session.session.manager import OutboundCookie, SecureSession
from secure_session.session.options import SessionConfig

logger = logging.getLogger(__name__)

STATE_ATTRIBUTE = "secure_session"


class SecureSessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware that loads sessions from request cookies and sets them on the response.

    Configs must be built once, at application start, and are only read here.
    """

    def __init__(
        self,
        app,
        configs: Union[SessionConfig, Sequence[SessionConfig]],
        default_session: Optional[str] = None,
    ):
        super().__init__(app)
        if isinstance(configs, SessionConfig):
            configs = [configs]
        self.configs = list(configs)
        self.default_session = default_session
        # Fail at startup instead of on the first request
        SecureSession(self.configs, default_session)

    async def dispatch(self, request: Request, call_next):
        session = SecureSession(self.configs, self.default_session)
        session.init(request.cookies)
        setattr(request.state, STATE_ATTRIBUTE, session)

        response = await call_next(request)

        for cookie in session.outbound_cookies():
            _set_cookie(response, cookie)
        for cookie in session.deleted_cookies():
            _expire_cookie(response, cookie)

        return response


def _set_cookie(response: Response, cookie: OutboundCookie) -> None:
    options = cookie.options
    response.set_cookie(
        key=cookie.name,
        value=cookie.value,
        max_age=options.max_age,
        expires=options.expires,
        path=options.path,
        domain=options.domain,
        secure=options.secure,
        httponly=options.http_only,
        samesite=options.same_site,
    )


def _expire_cookie(response: Response, cookie: OutboundCookie) -> None:
    options = cookie.options
    response.delete_cookie(
        key=cookie.name,
        path=options.path,
        domain=options.domain,
        secure=options.secure,
        httponly=options.http_only,
        samesite=options.same_site,
    )


def get_secure_session(request: Request) -> SecureSession:
    """
    FastAPI dependency returning the current request's session.

    Raises:
        ConfigurationError: If SecureSessionMiddleware is not installed
    """
    session = getattr(request.state, STATE_ATTRIBUTE, None)
    if session is None:
        raise ConfigurationError("SecureSessionMiddleware is not installed")
    return session
