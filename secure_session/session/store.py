"""Per-request session records.

A SessionRecordStore lives for one request/response cycle. Records hold the
encoded token, never the plaintext, and the cookie itself is the only
persistence.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

from secure_session.session import codec
from secure_session.session.options import CookieOptions, SessionConfig

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    """State of one named session during one request."""

    name: str
    value: str
    issued_at: int
    config: SessionConfig
    deleted: bool = False
    regenerated: bool = False

    @property
    def cookie_name(self) -> str:
        return self.config.cookie_key

    @property
    def cookie_options(self) -> CookieOptions:
        return self.config.cookie_options

    def remaining(self) -> timedelta:
        """Time left before the token expires; negative once expired."""
        expires_at = self.issued_at + self.config.expiry_millis
        return timedelta(milliseconds=expires_at - codec.now_millis())

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"<SessionRecord(name={self.name!r}, deleted={self.deleted}, "
            f"regenerated={self.regenerated})>"
        )


class SessionRecordStore:
    """Mapping from session name to its record for the current request."""

    def __init__(self):
        self._records: Dict[str, SessionRecord] = {}

    def load(self, config: SessionConfig, token: str) -> Optional[SessionRecord]:
        """
        Create a record from an inbound cookie value.

        Returns:
            The record, or None if the token did not decode
        """
        decoded = codec.open_token(token, config)
        if decoded is None:
            return None
        record = SessionRecord(
            name=config.name,
            value=token,
            issued_at=decoded.issued_at,
            config=config,
        )
        self._records[config.name] = record
        return record

    def set(self, config: SessionConfig, value: codec.Payload) -> SessionRecord:
        """
        Encode a value and store it, replacing any previous record.

        Raises:
            InvalidPayloadError: If the value cannot be encoded
        """
        encoded = codec.encode(value, config)
        record = SessionRecord(
            name=config.name,
            value=encoded.token,
            issued_at=encoded.issued_at,
            config=config,
        )
        self._records[config.name] = record
        logger.debug("Wrote session record", extra={'session_name': config.name})
        return record

    def get(self, name: str) -> Optional[SessionRecord]:
        """Return the live record for a session, ignoring deleted ones."""
        record = self._records.get(name)
        if record is None or record.deleted:
            return None
        return record

    def read(self, name: str) -> Optional[str]:
        """Decode the stored token of a session, or None."""
        record = self.get(name)
        if record is None:
            return None
        return codec.decode(record.value, record.config, record.regenerated)

    def mark_deleted(self, name: str) -> None:
        record = self._records.get(name)
        if record is not None:
            record.deleted = True

    def mark_regenerated(self, name: str) -> None:
        record = self._records.get(name)
        if record is not None:
            record.regenerated = True

    def clear(self) -> None:
        self._records.clear()

    def live(self) -> Iterator[SessionRecord]:
        return (record for record in self._records.values() if not record.deleted)

    def deleted(self) -> Iterator[SessionRecord]:
        return (record for record in self._records.values() if record.deleted)

    @property
    def records(self) -> Mapping[str, SessionRecord]:
        return MappingProxyType(self._records)

    def __len__(self) -> int:
        return len(self._records)
