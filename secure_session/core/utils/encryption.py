"""
Key material resolution, nonce generation and per-token cipher construction.
"""

import base64
import logging
import secrets
from pathlib import Path
from typing import Optional, Union

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from secure_session.core.exceptions import ConfigurationError, KeyFileNotFoundError
from secure_session.core.logging_config import log_security_event

logger = logging.getLogger(__name__)

# Protocol constants, not tunable per session
SALT_LENGTH = 16
SECRET_LENGTH = 16
NONCE_LENGTH = 16

DEFAULT_KDF_ITERATIONS = 300_000
MIN_KDF_ITERATIONS = 100_000

DERIVED_KEY_LENGTH = 32
TOKEN_KEY_INFO = b"secure-session token key v1"


def _encode_fixed_length(value: str, field_name: str, length: int) -> bytes:
    """Encode a secret or salt as UTF-8 and require an exact byte length."""
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string")
    if len(value) != length:
        raise ConfigurationError(f"{field_name} must be {length} characters long")
    encoded = value.encode('utf-8')
    if len(encoded) != length:
        raise ConfigurationError(
            f"{field_name} must be {length} single-byte UTF-8 characters"
        )
    return encoded


def validate_salt(salt: str) -> bytes:
    """Return the salt bytes, or raise if the salt is not exactly SALT_LENGTH bytes."""
    return _encode_fixed_length(salt, "Salt", SALT_LENGTH)


def validate_secret(secret: str) -> bytes:
    """Return the secret bytes, or raise if the secret is not exactly SECRET_LENGTH bytes."""
    return _encode_fixed_length(secret, "Secret", SECRET_LENGTH)


def derive_secret_key(secret: bytes, salt: bytes, iterations: int = DEFAULT_KDF_ITERATIONS) -> bytes:
    """
    Derive key material from a secret and salt with PBKDF2-HMAC-SHA256.

    Args:
        secret: Secret bytes
        salt: Salt bytes
        iterations: PBKDF2 iteration count

    Returns:
        32 bytes of key material
    """
    if iterations < MIN_KDF_ITERATIONS:
        raise ConfigurationError(
            f"KDF iterations must be at least {MIN_KDF_ITERATIONS:,}"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=DERIVED_KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret)


def read_key_file(key_path: Union[str, Path]) -> bytes:
    """
    Read key material from a key file.

    The entire file contents are the key.

    Raises:
        KeyFileNotFoundError: If the file does not exist
        ConfigurationError: If the file is empty or unreadable
    """
    path = Path(key_path)
    if not path.is_file():
        log_security_event(
            'key_file_missing',
            "Configured key file does not exist",
            level='high',
            extra={'path': str(path)},
        )
        raise KeyFileNotFoundError(str(path))

    try:
        key = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Could not read key file {path}: {e}") from e

    if not key:
        raise ConfigurationError(f"Key file is empty: {path}")

    logger.debug("Loaded session key from file", extra={'path': str(path)})
    return key


def resolve_key_material(
    *,
    secret: Optional[str] = None,
    salt: Optional[str] = None,
    key_path: Optional[Union[str, Path]] = None,
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS,
) -> bytes:
    """
    Turn session configuration into the symmetric key material.

    Exactly one source must be configured:

    * ``secret`` alone: the 16 secret bytes are the key material.
    * ``secret`` with ``salt``: PBKDF2 over the secret, salted with ``salt``.
    * ``key_path``: the key file contents.

    Raises:
        ConfigurationError: On a missing or conflicting source, or invalid lengths
    """
    if key_path is not None:
        if secret is not None:
            raise ConfigurationError("Provide either a secret or a key file, not both")
        if salt is not None:
            raise ConfigurationError("Salt is only used with a secret")
        return read_key_file(key_path)

    if secret is None:
        if salt is not None:
            raise ConfigurationError("Salt must be provided together with a secret")
        raise ConfigurationError("Either a secret or a key file must be provided")

    secret_bytes = validate_secret(secret)
    if salt is None:
        return secret_bytes
    return derive_secret_key(secret_bytes, validate_salt(salt), kdf_iterations)


def generate_nonce() -> bytes:
    """Generate a fresh random nonce for one encode call."""
    return secrets.token_bytes(NONCE_LENGTH)


def build_token_cipher(key_material: bytes, nonce: bytes) -> Fernet:
    """
    Create the Fernet cipher for one token.

    The per-token key is HKDF-SHA256 over the key material, salted with the
    nonce, so a token only opens with both the long-lived key and its nonce.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=DERIVED_KEY_LENGTH,
        salt=nonce,
        info=TOKEN_KEY_INFO,
    )
    return Fernet(base64.urlsafe_b64encode(hkdf.derive(key_material)))
