"""
Master-password rotation.

The vault is re-encrypted under the new password and uploaded first; only then
is the server asked to accept the new password as the login credential. Done
the other way round, a login with the new password could find a vault it
cannot decrypt.

Security Note:
    Plaintext exists in memory only between the decrypt and re-encrypt steps.
    Never log passwords, plaintext or ciphertext values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from zcloudpass.network.auth import AuthClient
from zcloudpass.network.sync import SyncClient
from zcloudpass.security.codec import create_empty_vault, decrypt_vault, encrypt_vault

from .exceptions import PartialRotationError, ZCloudPassError

logger = logging.getLogger(__name__)


@dataclass
class RotationResult:
    vault_version: Optional[int]
    entries: int


class RotationOrchestrator:
    def __init__(self, auth: AuthClient, sync: SyncClient):
        self.auth = auth
        self.sync = sync

    def rotate(self, email: str, current_password: str, new_password: str) -> RotationResult:
        """Re-key the vault and switch the server credential, in that order.

        Raises:
            DecryptionError: ``current_password`` does not open the vault.
            ConflictError: the vault changed concurrently; nothing was changed
                on the server and the rotation can be restarted.
            PartialRotationError: the vault is now under ``new_password`` but
                the credential change failed.
        """
        blob, version = self.sync.get(email, current_password)

        if blob is None:
            # first-time account with nothing stored yet
            vault = create_empty_vault()
        else:
            vault = decrypt_vault(blob, current_password)

        entries = len(vault.entries)
        new_blob = encrypt_vault(vault, new_password)
        del vault

        # a ConflictError here propagates before any credential change
        new_version = self.sync.update(email, current_password, new_blob, version)
        logger.info("vault re-encrypted under new password (version %s)", new_version)

        try:
            self.auth.change_password(current_password, new_password)
        except ZCloudPassError as exc:
            logger.error("credential change failed after vault upload: %s", exc)
            raise PartialRotationError(new_version, exc) from exc

        return RotationResult(vault_version=new_version, entries=entries)

    def retry_credential_change(self, current_password: str, new_password: str) -> None:
        """Repeat only the credential switch after a :class:`PartialRotationError`.

        The vault upload is not repeated; it already holds the new ciphertext.
        """
        try:
            self.auth.change_password(current_password, new_password)
        except ZCloudPassError as exc:
            raise PartialRotationError(None, exc) from exc
        logger.info("credential change completed on retry")
