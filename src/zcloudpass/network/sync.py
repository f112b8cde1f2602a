"""
Vault blob synchronization with optimistic concurrency.

The server keeps one opaque ciphertext per account plus a version counter.
A write carries the version the caller last read; if the server's counter has
moved on, it answers 409 and the write is refused with :class:`ConflictError`.
The payload is ciphertext, so merging is left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from zcloudpass.core.exceptions import ConflictError, HttpError

from .auth import AuthClient
from .http import parse_error_response

logger = logging.getLogger(__name__)

CONFLICT = 409


def _version_of(data: Any) -> Optional[int]:
    if not isinstance(data, dict):
        return None
    version = data.get("vault_version")
    # bool is an int subclass but never a version
    if isinstance(version, int) and not isinstance(version, bool):
        return version
    return None


class SyncClient:
    def __init__(self, auth: AuthClient):
        self.auth = auth
        self.transport = auth.transport

    @property
    def vault_url(self) -> str:
        return f"{self.transport.api_base}/vault/"

    def get(self, email: str, password: Optional[str] = None) -> Tuple[Optional[str], Optional[int]]:
        """Fetch ``(encrypted_vault, vault_version)``.

        A ``None`` blob means the account has never stored a vault.
        """
        if not email:
            raise ValueError("email is required to fetch vault")
        session = self.auth.ensure_session(email, password)

        response = self.transport.request("GET", self.vault_url, headers=session.auth_header())
        if not response.is_success:
            raise parse_error_response(response)

        try:
            data = response.json()
        except ValueError:
            raise HttpError("Vault response was not JSON", code="invalid_response", status=response.status_code) from None

        blob = data.get("encrypted_vault") if isinstance(data, dict) else None
        if blob is not None and not isinstance(blob, str):
            raise HttpError("Vault response carried a non-string vault", code="invalid_response", status=response.status_code)
        version = _version_of(data)
        logger.debug("fetched vault (present=%s, version=%s)", blob is not None, version)
        return blob, version

    def update(
        self,
        email: str,
        password: Optional[str],
        blob: str,
        expected_version: Optional[int] = None,
    ) -> Optional[int]:
        """Store ``blob`` if the server is still at ``expected_version``.

        Returns the new version: the server's echo when it sends one, otherwise
        ``expected_version + 1``. Without an expected version and without an
        echo the result is None.

        Raises:
            ConflictError: the vault changed on the server since it was read.
        """
        if not email:
            raise ValueError("email is required to update vault")
        session = self.auth.ensure_session(email, password)

        payload: Dict[str, Any] = {"encrypted_vault": blob}
        if expected_version is not None:
            payload["vault_version"] = expected_version

        response = self.transport.request("PUT", self.vault_url, json_body=payload, headers=session.auth_header())

        if response.status_code == CONFLICT:
            err = parse_error_response(response, "Conflict updating vault")
            logger.info("vault update conflicted at expected version %s", expected_version)
            raise ConflictError(err.message, code=None if err.code == "http_409" else err.code)

        if not response.is_success:
            raise parse_error_response(response, "Failed to update vault")

        try:
            echoed = _version_of(response.json())
        except ValueError:
            echoed = None

        if echoed is not None:
            new_version = echoed
        elif expected_version is not None:
            new_version = expected_version + 1
        else:
            new_version = None
        logger.info("vault updated to version %s", new_version)
        return new_version
