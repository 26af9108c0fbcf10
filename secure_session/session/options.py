"""
Session and cookie options.

A SessionConfig is built once at process start and shared read-only by every
request; resolving its key material happens in the constructor.
"""

import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from secure_session.core.exceptions import ConfigurationError
from secure_session.core.utils.encryption import (
    DEFAULT_KDF_ITERATIONS,
    resolve_key_material,
    validate_salt,
)

SameSite = Literal["lax", "strict", "none"]

# Characters that base64 and base64url output can contain
BASE64_ALPHABET = frozenset(string.ascii_letters + string.digits + "+/=-_")

DEFAULT_SESSION_NAME = "session"
DEFAULT_SEPARATOR = ";"
DEFAULT_EXPIRY = timedelta(days=1)


class CookieOptions(BaseModel):
    """Cookie attributes passed through to the HTTP layer unmodified."""

    model_config = ConfigDict(frozen=True)

    path: str = "/"
    domain: Optional[str] = None
    expires: Optional[datetime] = None
    max_age: Optional[int] = Field(default=None, ge=0)
    secure: bool = False
    http_only: bool = True
    same_site: Optional[SameSite] = None


@dataclass(frozen=True)
class SessionConfig:
    """
    Configuration of one named session.

    Key material comes from exactly one source: a 16 character ``secret``
    (optionally with a 16 character ``salt``) or a ``key_path``.

    When a salt is configured it is also used as the nonce of every token, so
    all tokens of the session share one per-token key and carry the same
    visible nonce. Leave the salt out when tokens must not be linkable.

    Raises:
        ConfigurationError: On any invalid combination, at construction time
    """

    name: str = DEFAULT_SESSION_NAME
    cookie_name: Optional[str] = None
    expiry: timedelta = DEFAULT_EXPIRY
    separator: str = DEFAULT_SEPARATOR
    secret: Optional[str] = field(default=None, repr=False)
    salt: Optional[str] = field(default=None, repr=False)
    key_path: Optional[Union[str, Path]] = None
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS
    cookie_options: CookieOptions = field(default_factory=CookieOptions)
    key: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Session name cannot be empty")
        if self.cookie_name is not None and not self.cookie_name:
            raise ConfigurationError("Cookie name cannot be empty")
        if not isinstance(self.expiry, timedelta) or self.expiry <= timedelta(0):
            raise ConfigurationError("Expiry must be a positive timedelta")
        self._validate_separator(self.separator)

        key = resolve_key_material(
            secret=self.secret,
            salt=self.salt,
            key_path=self.key_path,
            kdf_iterations=self.kdf_iterations,
        )
        object.__setattr__(self, 'key', key)

    @staticmethod
    def _validate_separator(separator: str) -> None:
        if not isinstance(separator, str) or not separator:
            raise ConfigurationError("Separator cannot be empty")
        clashing = BASE64_ALPHABET.intersection(separator)
        if clashing:
            raise ConfigurationError(
                "Separator cannot contain base64 characters: "
                + "".join(sorted(clashing))
            )

    @property
    def cookie_key(self) -> str:
        """Name of the cookie carrying this session."""
        return self.cookie_name or self.name

    @property
    def fixed_nonce(self) -> Optional[bytes]:
        """The salt bytes when a salt pins the nonce, else None."""
        if self.salt is None:
            return None
        return validate_salt(self.salt)

    @property
    def expiry_millis(self) -> int:
        return self.expiry // timedelta(milliseconds=1)
