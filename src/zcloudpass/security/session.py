"""Persisted auth session with an absolute expiry.

The server hands out a bearer token together with an expiry in one of a few
shapes. `normalize_expires` turns whatever arrived into a timezone-aware UTC
instant, falling back to one hour from now instead of failing the login. The
`SessionStore` keeps one record ``{"token", "expires_at"}`` in a storage
backend from :mod:`zcloudpass.security.keystore` and answers whether it is
still usable. Expiry is only ever detected when the session is read; nothing
here renews a token ahead of time.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from zcloudpass.core.models import SessionInfo

from .keystore import SESSION_KEY, FileStorage, KeyringStorage, MemoryStorage

logger = logging.getLogger(__name__)

FALLBACK_TTL = timedelta(hours=1)

_SPACE_FORM = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> Optional[datetime]:
    # naive values are taken as UTC; None if the UTC instant is out of range
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        return None


def parse_instant(value) -> Optional[datetime]:
    """Parse ``value`` into a UTC datetime, or return None if it is not a timestamp."""
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    # "YYYY-MM-DD HH:MM:SS" followed by something fromisoformat rejects
    if _SPACE_FORM.match(text):
        try:
            return datetime.strptime(text[:19], "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)
        except ValueError:
            pass

    # RFC 2822 dates, e.g. "Mon, 01 Jan 2024 12:00:00 GMT"
    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def normalize_expires(value, now: Optional[datetime] = None) -> datetime:
    """Return the absolute expiry for a server-provided ``expires_at``.

    Never raises: empty or unparseable input yields ``now + 1 hour``.
    """
    parsed = parse_instant(value)
    if parsed is not None:
        return parsed
    logger.debug("unrecognised session expiry, assuming %s", FALLBACK_TTL)
    return (now or _utcnow()) + FALLBACK_TTL


class SessionStore:
    """Load, save and validate the single cached session record."""

    def __init__(self, storage=None):
        self.storage = storage if storage is not None else MemoryStorage()

    @classmethod
    def from_config(cls, config) -> "SessionStore":
        backend = config.session_backend
        if backend == "keyring":
            storage = KeyringStorage(service=config.keyring_service, account=SESSION_KEY)
        elif backend == "file":
            storage = FileStorage(config.session_path)
        elif backend == "memory":
            storage = MemoryStorage()
        else:
            raise ValueError(f"Unknown session backend: {backend}")
        return cls(storage)

    def save(self, session: SessionInfo) -> SessionInfo:
        """Persist ``session`` with its expiry normalized to UTC."""
        normalized = SessionInfo(token=session.token, expires_at=normalize_expires(session.expires_at))
        self.storage.write(json.dumps(normalized.to_dict()))
        return normalized

    def load(self) -> Optional[SessionInfo]:
        """Return the stored session, or None if absent or unreadable."""
        raw = self.storage.read()
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("discarding unparseable session record")
            return None
        if not isinstance(data, dict) or not isinstance(data.get("token"), str):
            return None
        expires_at = parse_instant(data.get("expires_at"))
        if expires_at is None:
            return None
        return SessionInfo(token=data["token"], expires_at=expires_at)

    def clear(self) -> None:
        self.storage.delete()

    def is_expired(self, session: SessionInfo) -> bool:
        expires_at = parse_instant(session.expires_at)
        if expires_at is None:
            return True
        return _utcnow() > expires_at

    def current(self) -> Optional[SessionInfo]:
        """Return the stored session if it exists and has not expired."""
        session = self.load()
        if session is None or self.is_expired(session):
            return None
        return session
