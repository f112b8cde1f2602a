"""Storage backends for the persisted session record.

The session record is a small JSON string kept under one well-known name.
`KeyringStorage` wraps the `keyring` package so the token lives in the OS
keystore; `FileStorage` writes a private JSON file; `MemoryStorage` keeps it in
process only. Do not assume keyring provides hardware-backed security on all
platforms.
"""
import os
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import PasswordDeleteError

SESSION_KEY = "zcloudpass_session"


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because the `keyring` package exposes different backends
    across platforms.
    """
    try:
        backend = keyring.get_keyring()
    except Exception as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Simple", "File", "Fail", "Null")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    # treat known platform backends as acceptable
    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"


class KeyringStorage:
    """Keep the session record in the OS keystore under (service, account)."""

    def __init__(self, service: str = "zcloudpass", account: str = SESSION_KEY, force: bool = False):
        if not force:
            secure, msg = assess_keyring_backend()
            if not secure:
                raise RuntimeError(
                    f"refusing to store the session token in the OS keystore: {msg}; "
                    "pass force=True to override if you understand the risk"
                )
        self.service = service
        self.account = account

    def read(self) -> Optional[str]:
        return keyring.get_password(self.service, self.account)

    def write(self, text: str) -> None:
        keyring.set_password(self.service, self.account, text)

    def delete(self) -> None:
        try:
            keyring.delete_password(self.service, self.account)
        except PasswordDeleteError:
            # nothing stored
            pass


class FileStorage:
    """Keep the session record in a JSON file readable only by the owner."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class MemoryStorage:
    """Process-local storage; nothing survives the interpreter."""

    def __init__(self, text: Optional[str] = None):
        self._text = text

    def read(self) -> Optional[str]:
        return self._text

    def write(self, text: str) -> None:
        self._text = text

    def delete(self) -> None:
        self._text = None
