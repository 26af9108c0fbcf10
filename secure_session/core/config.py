"""
Application configuration using Pydantic Settings.

Configuration values can be set via environment variables (prefixed with
``SECURE_SESSION_``) or a .env file.
"""

from datetime import timedelta
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from secure_session.core.utils.encryption import DEFAULT_KDF_ITERATIONS
from secure_session.session.options import CookieOptions, SessionConfig


class Settings(BaseSettings):
    """Settings for the default session of an application."""

    model_config = SettingsConfigDict(
        env_prefix="SECURE_SESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Session
    session_name: str = "session"
    cookie_name: Optional[str] = None
    expiry_seconds: int = Field(default=86400, gt=0)
    separator: str = ";"

    # Key material, exactly one of secret or key_path
    secret: Optional[str] = None
    salt: Optional[str] = None
    key_path: Optional[str] = None
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS

    # Cookie attributes
    cookie_path: str = "/"
    cookie_domain: Optional[str] = None
    cookie_max_age: Optional[int] = None
    cookie_secure: bool = False
    cookie_http_only: bool = True
    cookie_same_site: Optional[Literal["lax", "strict", "none"]] = None

    # Logging
    log_level: str = "INFO"
    json_logging: bool = True

    def to_cookie_options(self) -> CookieOptions:
        return CookieOptions(
            path=self.cookie_path,
            domain=self.cookie_domain,
            max_age=self.cookie_max_age,
            secure=self.cookie_secure,
            http_only=self.cookie_http_only,
            same_site=self.cookie_same_site,
        )

    def to_session_config(self) -> SessionConfig:
        """
        Build the immutable session configuration.

        Call once at process start: resolving the key may read a file and run
        the key derivation.
        """
        return SessionConfig(
            name=self.session_name,
            cookie_name=self.cookie_name,
            expiry=timedelta(seconds=self.expiry_seconds),
            separator=self.separator,
            secret=self.secret,
            salt=self.salt,
            key_path=self.key_path,
            kdf_iterations=self.kdf_iterations,
            cookie_options=self.to_cookie_options(),
        )


# Global settings instance
settings = Settings()
