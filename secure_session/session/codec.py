"""
Token codec.

A token is ``base64(ciphertext) SEP base64url(nonce)``. The ciphertext is a
Fernet token over ``payload SEP issued_at_millis`` under a key derived from the
session key material and the nonce.

Decoding never raises for bad input: malformed, tampered and expired tokens
all decode to None, and callers cannot tell these cases apart.
"""

import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from cryptography.fernet import InvalidToken

from secure_session.core.exceptions import InvalidPayloadError
from secure_session.core.logging_config import log_security_event
from secure_session.core.utils.encryption import (
    NONCE_LENGTH,
    build_token_cipher,
    generate_nonce,
)
from secure_session.session.options import SessionConfig

logger = logging.getLogger(__name__)

Payload = Union[str, Dict[str, Any], List[Any]]


@dataclass(frozen=True)
class EncodedToken:
    """Result of encoding: the wire token and the timestamp baked into it."""

    token: str
    issued_at: int


@dataclass(frozen=True)
class DecodedToken:
    """Result of a successful decode."""

    payload: str
    issued_at: int


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def serialize_payload(value: Any, separator: str) -> str:
    """
    Turn a payload into its text form.

    Strings pass through; dicts and lists become canonical JSON.

    Raises:
        InvalidPayloadError: For other types, values that are not
            JSON-serializable, or text containing the separator
    """
    if isinstance(value, str):
        text = value
    elif isinstance(value, (dict, list)):
        try:
            text = json.dumps(value, sort_keys=True, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise InvalidPayloadError(
                f"Value is not JSON serializable: {e}"
            ) from e
    else:
        raise InvalidPayloadError(
            "Value must be a string or a JSON serializable dict or list, "
            f"got {type(value).__name__}"
        )

    # A suffix overlapping a multi-character separator would split early too
    if (text + separator).find(separator) != len(text):
        raise InvalidPayloadError("Value cannot contain the separator")
    return text


def encode(value: Payload, config: SessionConfig) -> EncodedToken:
    """
    Encrypt a payload into a token stamped with the current time.

    Args:
        value: String, dict or list payload
        config: Session configuration providing key, separator and nonce mode

    Returns:
        The wire token and its issue timestamp in epoch milliseconds

    Raises:
        InvalidPayloadError: If the payload cannot be serialized or contains
            the separator
    """
    sep = config.separator
    text = serialize_payload(value, sep)

    nonce = config.fixed_nonce or generate_nonce()
    issued_at = now_millis()

    cipher = build_token_cipher(config.key, nonce)
    fernet_token = cipher.encrypt(f"{text}{sep}{issued_at}".encode('utf-8'))
    ciphertext = base64.urlsafe_b64decode(fernet_token)

    token = (
        base64.b64encode(ciphertext).decode('ascii')
        + sep
        + base64.urlsafe_b64encode(nonce).decode('ascii')
    )
    return EncodedToken(token=token, issued_at=issued_at)


def _reject(reason: str, session_name: str) -> None:
    logger.debug("Rejected session token: %s", reason)
    log_security_event(
        'token_rejected',
        f"Session token rejected: {reason}",
        level='low',
        extra={'session_name': session_name, 'reason': reason},
    )


def open_token(
    token: str,
    config: SessionConfig,
    bypass_expiry: bool = False,
) -> Optional[DecodedToken]:
    """
    Authenticate, decrypt and check a token.

    Args:
        token: Wire token
        config: Session configuration the token was issued under
        bypass_expiry: Skip the age check (for records regenerated in this request)

    Returns:
        Payload text and issue timestamp, or None if the token is malformed,
        fails authentication or is expired
    """
    sep = config.separator
    if not isinstance(token, str):
        return None

    parts = token.split(sep)
    if len(parts) != 2:
        _reject("malformed token", config.name)
        return None
    cipher_b64, nonce_b64 = parts

    try:
        ciphertext = base64.b64decode(cipher_b64, validate=True)
        nonce = base64.urlsafe_b64decode(nonce_b64.encode('ascii'))
    except (binascii.Error, ValueError):
        _reject("invalid encoding", config.name)
        return None

    # Decoders ignore unused trailing bits, so only the canonical form is accepted
    if (
        base64.b64encode(ciphertext).decode('ascii') != cipher_b64
        or base64.urlsafe_b64encode(nonce).decode('ascii') != nonce_b64
    ):
        _reject("invalid encoding", config.name)
        return None

    if not ciphertext or len(nonce) != NONCE_LENGTH:
        _reject("invalid nonce or empty ciphertext", config.name)
        return None

    cipher = build_token_cipher(config.key, nonce)
    try:
        plaintext = cipher.decrypt(base64.urlsafe_b64encode(ciphertext)).decode('utf-8')
    except (InvalidToken, UnicodeDecodeError):
        _reject("authentication failed", config.name)
        return None

    body = plaintext.split(sep)
    if len(body) != 2:
        _reject("malformed plaintext", config.name)
        return None
    payload, stamp = body

    try:
        issued_at = int(stamp)
    except ValueError:
        _reject("malformed timestamp", config.name)
        return None

    age = now_millis() - issued_at
    if age > config.expiry_millis and not bypass_expiry:
        _reject("expired", config.name)
        return None

    return DecodedToken(payload=payload, issued_at=issued_at)


def decode(
    token: str,
    config: SessionConfig,
    bypass_expiry: bool = False,
) -> Optional[str]:
    """Decode a token to its payload text, or None (see ``open_token``)."""
    decoded = open_token(token, config, bypass_expiry)
    if decoded is None:
        return None
    return decoded.payload
