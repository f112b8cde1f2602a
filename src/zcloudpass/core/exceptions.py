"""
Exceptions for the zcloudpass client
This is placed such that there is a general error catcher
"""

from typing import Optional


class ZCloudPassError(Exception):
    # general container for errors
    pass


class TransportError(ZCloudPassError):
    # raised when the network fails before any response arrives
    pass


class HttpError(ZCloudPassError):
    """Non-2xx response from the service.

    ``code`` is the service-provided error code, or ``http_<status>`` when the
    body carries none.
    """

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code or f"http_{status}"

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConflictError(HttpError):
    # raised on 409 when the vault version moved on the server

    def __init__(self, message: str = "Conflict updating vault", code: Optional[str] = None, status: int = 409):
        super().__init__(message, code=code or "conflict", status=status)


class AuthenticationRequiredError(ZCloudPassError):
    # raised when an operation needs a valid session and none is available
    pass


class DecryptionError(ZCloudPassError):
    # raised for any decrypt/parse failure; wrong password and corrupted data look the same

    def __init__(self, message: str = "Failed to decrypt vault. Wrong password?"):
        super().__init__(message)


class PartialRotationError(ZCloudPassError):
    """The vault was re-encrypted and uploaded but the credential change failed.

    Login still needs the old password while the vault only opens with the new
    one. ``vault_version`` is the version of the uploaded blob and ``cause`` the
    error from the credential-change call.
    """

    def __init__(self, vault_version: Optional[int], cause: Exception):
        super().__init__(
            "vault re-encrypted under the new password but the server credential "
            f"was not changed ({cause})"
        )
        self.vault_version = vault_version
        self.cause = cause


class VaultError(ZCloudPassError):
    # raised on local vault editing misuse (unknown entry, vault not open)
    pass
