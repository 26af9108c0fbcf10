"""
Session manager.

SecureSession is request-scoped: build one per request from configs that were
created once at process start. It is not safe to share one instance between
concurrent requests.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from secure_session.core.exceptions import ConfigurationError, SessionNotFoundError
from secure_session.session.codec import Payload
from secure_session.session.options import CookieOptions, SessionConfig
from secure_session.session.store import SessionRecord, SessionRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundCookie:
    """A cookie the HTTP layer should set on the response."""

    name: str
    value: str
    options: CookieOptions


class SecureSession:
    """
    Named, encrypted, self-expiring sessions carried in cookies.

    Example:
        config = SessionConfig(secret="0123456789abcdef", salt="fedcba9876543210")
        session = SecureSession(config)
        session.init(request.cookies)
        session.write({"user_id": 42})
        session.read()  # '{"user_id":42}'
    """

    def __init__(
        self,
        configs: Union[SessionConfig, Sequence[SessionConfig]],
        default_session: Optional[str] = None,
    ):
        if isinstance(configs, SessionConfig):
            configs = [configs]
        if not configs:
            raise ConfigurationError("At least one session config must be provided")

        self._configs: Dict[str, SessionConfig] = {}
        cookie_names = set()
        for config in configs:
            if config.name in self._configs:
                raise ConfigurationError(f"Duplicate session name: {config.name!r}")
            if config.cookie_key in cookie_names:
                raise ConfigurationError(f"Duplicate cookie name: {config.cookie_key!r}")
            self._configs[config.name] = config
            cookie_names.add(config.cookie_key)

        if default_session is None:
            default_session = configs[0].name
        self.default_session = default_session
        if self.default_session not in self._configs:
            raise SessionNotFoundError(self.default_session)

        self._store = SessionRecordStore()

    def config_for(self, name: Optional[str] = None) -> SessionConfig:
        """
        Resolve a session name to its configuration.

        Raises:
            SessionNotFoundError: If no session with that name is configured
        """
        if name is None:
            name = self.default_session
        try:
            return self._configs[name]
        except KeyError:
            raise SessionNotFoundError(name) from None

    @property
    def configs(self) -> List[SessionConfig]:
        return list(self._configs.values())

    def init(self, cookies: Mapping[str, str]) -> None:
        """
        Load sessions from the request's cookies.

        Cookies that are malformed, tampered with or expired are ignored.

        Args:
            cookies: Mapping of cookie name to value
        """
        for config in self._configs.values():
            token = cookies.get(config.cookie_key)
            if token is None:
                continue
            if self._store.load(config, token) is None:
                logger.debug(
                    "Ignored invalid session cookie",
                    extra={'session_name': config.name},
                )

    def write(self, value: Payload, name: Optional[str] = None) -> None:
        """
        Encrypt a value into a session.

        Args:
            value: A string or a JSON serializable dict or list
            name: Session name (default session when omitted)

        Raises:
            SessionNotFoundError: If the session is not configured
            InvalidPayloadError: If the value cannot be stored
        """
        self._store.set(self.config_for(name), value)

    def read(self, name: Optional[str] = None) -> Optional[str]:
        """
        Decrypt a session's value.

        Returns:
            The stored text, or None if absent, deleted or expired
        """
        config = self.config_for(name)
        return self._store.read(config.name)

    def read_json(self, name: Optional[str] = None) -> Any:
        """Read a session written with a dict or list; None if absent or not JSON."""
        text = self.read(name)
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None

    def get(self, name: Optional[str] = None) -> Optional[SessionRecord]:
        """Return a session's live record without decrypting it."""
        config = self.config_for(name)
        return self._store.get(config.name)

    def delete(self, name: Optional[str] = None) -> None:
        """Mark a session deleted so it is no longer read or sent."""
        config = self.config_for(name)
        self._store.mark_deleted(config.name)

    def regenerate(self, name: Optional[str] = None) -> None:
        """Let the next read of a session ignore the age of its token."""
        config = self.config_for(name)
        self._store.mark_regenerated(config.name)

    def clear(self) -> None:
        """Drop every record."""
        self._store.clear()

    @property
    def records(self) -> Mapping[str, SessionRecord]:
        return self._store.records

    def outbound_cookies(self) -> List[OutboundCookie]:
        """Cookies to set on the response, one per live record."""
        return [
            OutboundCookie(
                name=record.cookie_name,
                value=record.value,
                options=record.cookie_options,
            )
            for record in self._store.live()
        ]

    def deleted_cookies(self) -> List[OutboundCookie]:
        """Cookies of deleted sessions, for the HTTP layer to expire."""
        return [
            OutboundCookie(name=record.cookie_name, value="", options=record.cookie_options)
            for record in self._store.deleted()
        ]

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str) or name not in self._configs:
            return False
        return self._store.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(record.name for record in self._store.live())
