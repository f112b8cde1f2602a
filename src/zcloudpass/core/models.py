"""
Base data models for the vault document and the auth session
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_OPTIONAL_FIELDS = ("username", "password", "url", "notes")


@dataclass
class VaultEntry:
    """One credential record.

    ``id`` is an opaque identifier chosen by the caller and must stay stable
    across edits. Optional fields left as ``None`` are dropped from the JSON
    form.
    """

    id: str
    name: str
    username: Optional[str] = None
    password: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name}
        for key in _OPTIONAL_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultEntry":
        if not isinstance(data, dict):
            raise ValueError("entry must be an object")
        entry_id = data.get("id")
        name = data.get("name")
        if not isinstance(entry_id, str) or not isinstance(name, str):
            raise ValueError("entry requires string 'id' and 'name'")
        kwargs = {}
        for key in _OPTIONAL_FIELDS:
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"entry field '{key}' must be a string")
            kwargs[key] = value
        return cls(id=entry_id, name=name, **kwargs)


@dataclass
class Vault:
    # entries keep insertion order; the user sees them in this order
    entries: List[VaultEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"entries": [e.to_dict() for e in self.entries]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vault":
        if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
            raise ValueError("vault document must be an object with an 'entries' list")
        return cls(entries=[VaultEntry.from_dict(e) for e in data["entries"]])

    def find(self, entry_id: str) -> Optional[VaultEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class SessionInfo:
    """Bearer token plus its absolute expiry (timezone-aware, UTC)."""

    token: str
    expires_at: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "token": self.token,
            "expires_at": self.expires_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    def auth_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
