"""
Editing workflow for an unlocked vault.

`VaultSession` holds the decrypted vault for one user, the version it was read
at, and the master password for as long as the caller keeps the object. Every
change is saved immediately: encrypted under a fresh salt and nonce and sent
with the tracked version. The local version only advances when the server
confirms the write. On :class:`ConflictError` the local state is left as it
was; call :meth:`VaultSession.reload` to pick up the server copy.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, List, Optional

from zcloudpass.network.auth import AuthClient
from zcloudpass.network.sync import SyncClient
from zcloudpass.security.codec import create_empty_vault, decrypt_vault, encrypt_vault

from .exceptions import VaultError
from .models import Vault, VaultEntry

logger = logging.getLogger(__name__)


def new_entry_id() -> str:
    return uuid.uuid4().hex


def register_account(
    auth: AuthClient,
    email: str,
    password: str,
    username: Optional[str] = None,
) -> Any:
    """Register with an empty vault encrypted under ``password`` and log in."""
    blob = encrypt_vault(create_empty_vault(), password)
    return auth.register(email, password, blob, username=username)


class VaultSession:
    def __init__(self, sync: SyncClient, email: str, password: str):
        self.sync = sync
        self.email = email
        self._password: Optional[str] = password
        self.vault: Optional[Vault] = None
        self.version: Optional[int] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def open(self) -> Vault:
        """Fetch and decrypt the vault; a first-time account gets an empty one.

        Raises DecryptionError if the password does not open the stored vault.
        """
        password = self._require_password()
        blob, version = self.sync.get(self.email, password)
        if blob is None:
            vault = create_empty_vault()
        else:
            vault = decrypt_vault(blob, password)
        self.vault = vault
        self.version = version
        logger.info("vault opened (%d entries, version %s)", len(vault.entries), version)
        return vault

    def reload(self) -> Vault:
        """Drop local state and refetch, e.g. after a ConflictError."""
        return self.open()

    @property
    def entries(self) -> List[VaultEntry]:
        return list(self._require_vault().entries)

    def get_entry(self, entry_id: str) -> VaultEntry:
        entry = self._require_vault().find(entry_id)
        if entry is None:
            raise VaultError(f"No entry with id {entry_id}")
        return entry

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_entry(
        self,
        name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        url: Optional[str] = None,
        notes: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> VaultEntry:
        """Append a new entry and save. Empty optional fields are stored as absent."""
        if not name:
            raise ValueError("name is required")
        vault = self._require_vault()
        entry = VaultEntry(
            id=entry_id or new_entry_id(),
            name=name,
            username=username or None,
            password=password or None,
            url=url or None,
            notes=notes or None,
        )
        if vault.find(entry.id) is not None:
            raise VaultError(f"Entry id {entry.id} already exists")
        self.save(Vault(entries=vault.entries + [entry]))
        return entry

    def update_entry(self, entry_id: str, **changes: Optional[str]) -> VaultEntry:
        """Replace fields of an existing entry in place and save."""
        allowed = {"name", "username", "password", "url", "notes"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown entry fields: {', '.join(sorted(unknown))}")
        if "name" in changes and not changes["name"]:
            raise ValueError("name is required")

        current = self.get_entry(entry_id)
        fields = {}
        for key, value in changes.items():
            fields[key] = value if key == "name" else (value or None)
        updated = replace(current, **fields)
        entries = [updated if e.id == entry_id else e for e in self._require_vault().entries]
        self.save(Vault(entries=entries))
        return updated

    def delete_entry(self, entry_id: str) -> None:
        self.get_entry(entry_id)
        entries = [e for e in self._require_vault().entries if e.id != entry_id]
        self.save(Vault(entries=entries))

    def save(self, vault: Optional[Vault] = None) -> Optional[int]:
        """Encrypt and upload ``vault`` (default: the current one).

        The local copy and version are replaced only after the server accepts
        the write.
        """
        password = self._require_password()
        target = vault if vault is not None else self._require_vault()
        blob = encrypt_vault(target, password)
        new_version = self.sync.update(self.email, password, blob, self.version)
        self.vault = target
        self.version = new_version
        return new_version

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Forget the decrypted vault and the master password."""
        self.vault = None
        self.version = None
        self._password = None

    def __enter__(self) -> "VaultSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_password(self) -> str:
        if self._password is None:
            raise VaultError("Vault session is closed")
        return self._password

    def _require_vault(self) -> Vault:
        if self.vault is None:
            raise VaultError("Vault is not open")
        return self.vault
