"""
Key tooling for secure sessions.

Helpers for producing secrets, salts and key files that satisfy the session
key requirements.
"""

import logging
import os
import secrets
import string
from pathlib import Path
from typing import Optional, Union

from secure_session.core.utils.encryption import SALT_LENGTH, SECRET_LENGTH

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.ascii_letters + string.digits + "-_"


def generate_secret_key(length: int = SECRET_LENGTH) -> str:
    """
    Generate a cryptographically secure secret.

    Args:
        length: Number of characters (default matches the raw secret length)

    Returns:
        A random ASCII string usable as a session secret or key file body
    """
    if length <= 0:
        raise ValueError("Key length must be positive")
    return ''.join(secrets.choice(KEY_ALPHABET) for _ in range(length))


def generate_salt() -> str:
    """Generate a random salt for derived-key sessions."""
    return generate_secret_key(SALT_LENGTH)


def write_key_file(
    key_path: Union[str, Path],
    key: Optional[str] = None,
    overwrite: bool = False,
    length: int = 64,
) -> Path:
    """
    Write a key file with owner-only permissions.

    Args:
        key_path: Destination path
        key: Key to write; a random one of ``length`` characters when omitted
        overwrite: Replace an existing file instead of refusing
        length: Length of the generated key

    Returns:
        The path written

    Raises:
        FileExistsError: If the file exists and ``overwrite`` is False
    """
    path = Path(key_path)
    if key is None:
        key = generate_secret_key(length)
    if not key:
        raise ValueError("Key cannot be empty")

    path.parent.mkdir(parents=True, exist_ok=True)

    flags = os.O_WRONLY | os.O_CREAT | (os.O_TRUNC if overwrite else os.O_EXCL)
    fd = os.open(path, flags, 0o600)
    try:
        os.write(fd, key.encode('utf-8'))
    finally:
        os.close(fd)

    _set_secure_file_permissions(path)
    logger.info("Wrote session key file", extra={'path': str(path)})
    return path


def _set_secure_file_permissions(file_path: Path) -> None:
    """Set 0o600 (owner read/write only) on POSIX systems."""
    try:
        os.chmod(file_path, 0o600)
    except OSError as e:
        logger.warning(f"Could not set secure file permissions on {file_path}: {e}")
